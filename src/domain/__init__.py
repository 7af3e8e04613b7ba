"""
Domain layer for message assembly business logic.

This layer contains:
- Data models (type-safe structures)
- Error kinds (explicit terminal failures)
- Terminator filter (interactive end-of-message detection)
- Envelope assembly (headers, sender, recipients)
"""
