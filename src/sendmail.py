"""
Sendmail-compatible command that delivers mail through Amazon SES.

Usage:

    sendmail [-itv] [-B type] [-b m] [-d val] [-F name] [-f addr] [-r addr] [addr ...]

Reads a message from standard input and sends it to the given addresses.
Options are a subset of the standard sendmail options:

    -i  ignore single dot lines on incoming message (default unless stdin is a TTY)
    -t  also use To:, Cc:, Bcc: lines from input
    -v  verbose mode

Thin orchestration layer that delegates to EnvelopeAssembler and SesGateway.
Exit status: 0 on success, 2 on a command-line error, 1 on any other error.
"""

import logging
import os
import sys
from argparse import ArgumentParser
from typing import BinaryIO, List, Optional

from domain.envelope import EnvelopeAssembler
from domain.errors import AddressResolutionError, SendmailError, UsageError
from domain.models import Address, DeliveryResult
from integrations.ses_delivery import SesGateway
from services import config as config_service
from services import email as email_service

logger = logging.getLogger(__name__)

DEBUG_VALUES = ('http', 'nosend')


class SendmailArgumentParser(ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def build_parser() -> SendmailArgumentParser:
    parser = SendmailArgumentParser(
        prog='sendmail',
        usage='%(prog)s [options] [addr...]',
        description='Sendmail compatible command for delivering mail through Amazon SES.'
    )
    parser.add_argument('-B', metavar='type', dest='body_type', default='',
                        help='set body type (ignored)')
    parser.add_argument('-b', metavar='code', dest='mode', default='m',
                        help='run operation named by code (must be m)')
    parser.add_argument('-d', metavar='value', dest='debug', action='append', default=[],
                        help='set debugging value (http, nosend)')
    parser.add_argument('-F', metavar='name', dest='full_name', default='',
                        help='set the full name of the sender')
    parser.add_argument('-f', metavar='addr', dest='sender', default='',
                        help='set the from address of the mail')
    parser.add_argument('-r', metavar='addr', dest='sender',
                        help='archaic alias for -f')
    parser.add_argument('-i', dest='preserve_dots', action='store_true',
                        help='ignore single dot lines on incoming message')
    parser.add_argument('-t', dest='use_headers', action='store_true',
                        help='read To:, Cc:, Bcc: lines from message')
    parser.add_argument('-v', dest='verbose', action='store_true',
                        help='verbose mode')
    parser.add_argument('recipients', metavar='addr', nargs='*',
                        help='recipient address')
    return parser


def parse_args(parser: ArgumentParser, argv: Optional[List[str]] = None):
    """
    Parse and validate the command line.

    Raises:
        UsageError: For unknown flags, an unsupported -b mode, an unknown -d
                    value, or when neither addresses nor -t are given
    """
    args = parser.parse_args(argv)

    for value in args.debug:
        if value not in DEBUG_VALUES:
            raise UsageError(f"unknown debug value -d {value}")

    if args.mode != 'm':
        raise UsageError("only sendmail -bm is supported")

    if not args.recipients and not args.use_headers:
        raise UsageError("no delivery addresses given")

    return args


def resolve_sender(full_name: str, address: Optional[str]) -> Address:
    """
    Determine the sender from -F/-f, falling back to $USER.

    Raises:
        AddressResolutionError: If -f/-r is not used and $USER is not set
    """
    if not address:
        address = os.environ.get('USER', '')
        if not address:
            raise AddressResolutionError(
                "cannot determine From address: -f/-r not used, and $USER not set"
            )
    return Address(address=address, name=full_name or '')


def run(args, stdin: BinaryIO) -> DeliveryResult:
    """
    Deliver the message on stdin according to parsed arguments.

    Returns:
        DeliveryResult: Gateway result

    Raises:
        SendmailError: On any fatal error (nothing is sent)
    """
    recipients = email_service.parse_address_list(args.recipients, 'To')
    sender = resolve_sender(args.full_name, args.sender)
    gateway_config = config_service.load_gateway_config()

    message = email_service.read_message(stdin)

    assembler = EnvelopeAssembler(
        sender=sender,
        recipients=recipients,
        use_headers=args.use_headers,
        preserve_dots=args.preserve_dots,
        interactive=stdin.isatty()
    )
    envelope = assembler.assemble(message)

    gateway = SesGateway(gateway_config, send_enabled='nosend' not in args.debug)
    return gateway.send(envelope.sender, envelope.recipients, envelope.stream)


def main(argv: Optional[List[str]] = None, stdin: Optional[BinaryIO] = None) -> int:
    """
    Command-line entry point.

    Returns:
        int: Process exit status
    """
    parser = build_parser()
    try:
        args = parse_args(parser, argv)
    except UsageError as e:
        config_service.configure_logging()
        logger.error(f"invalid command line: {e}")
        parser.print_usage(sys.stderr)
        return e.exit_code

    config_service.configure_logging(verbose=args.verbose, debug_http='http' in args.debug)

    if stdin is None:
        stdin = sys.stdin.buffer

    try:
        result = run(args, stdin)
    except SendmailError as e:
        logger.error(f"sendmail: {e}")
        return e.exit_code

    logger.info(f"Delivered {result.size:,} bytes to {len(result.recipients)} recipient(s)")
    return 0


if __name__ == '__main__':
    sys.exit(main())
