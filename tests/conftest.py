"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_REGION', 'us-west-2')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config lookup and the log file inside a temporary directory."""
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.setenv('SES_SENDMAIL_LOG', str(tmp_path / 'ses-sendmail.log'))
    monkeypatch.delenv('SES_SENDMAIL_CONFIG', raising=False)
    monkeypatch.setenv('USER', 'gopher')
    yield
