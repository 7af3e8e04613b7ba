"""
Configuration for the SES delivery gateway and diagnostic logging.

The gateway configuration is a single line of the form
"<region> [<configuration-set>]", looked up with the following priority:
1. $SES_SENDMAIL_CONFIG
2. $HOME/.ses-sendmail
3. /etc/ses-sendmail.conf
If none is present the region falls back to $AWS_REGION or
$AWS_DEFAULT_REGION. Credentials come from the usual boto3 credential chain.
"""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import boto3

from domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = 'SES_SENDMAIL_CONFIG'
SYSTEM_CONFIG_FILE = Path('/etc/ses-sendmail.conf')
USER_CONFIG_NAME = '.ses-sendmail'

DEFAULT_LOG_FILE = '/var/log/ses-sendmail.log'
LOG_FILE_ENV_VAR = 'SES_SENDMAIL_LOG'

# Handlers added by configure_logging, replaced on the next call
_installed_handlers: List[logging.Handler] = []


@dataclass
class GatewayConfig:
    """
    Resolved delivery gateway settings.

    Attributes:
        region: AWS region of the SES endpoint
        configuration_set: SES configuration set name (optional)
        source: Where the settings came from (for diagnostics)
    """
    region: str
    configuration_set: Optional[str] = None
    source: str = 'environment'


def _config_files() -> List[Path]:
    files = []
    home = os.environ.get('HOME')
    if home:
        files.append(Path(home) / USER_CONFIG_NAME)
    files.append(SYSTEM_CONFIG_FILE)
    return files


def parse_config_line(line: str, source: str) -> GatewayConfig:
    """
    Parse a "<region> [<configuration-set>]" configuration line.

    Raises:
        ConfigurationError: If the line is empty or has extra fields
    """
    fields = line.split()
    if not fields or len(fields) > 2:
        raise ConfigurationError(
            f"invalid gateway configuration in {source}: "
            f"expected '<region> [<configuration-set>]', got {line.strip()!r}"
        )
    return GatewayConfig(
        region=fields[0],
        configuration_set=fields[1] if len(fields) == 2 else None,
        source=source
    )


def load_gateway_config() -> GatewayConfig:
    """
    Resolve the delivery gateway configuration.

    Returns:
        GatewayConfig: Region and optional configuration set

    Raises:
        ConfigurationError: If no region can be determined or a config
                            source is malformed
    """
    value = os.environ.get(CONFIG_ENV_VAR)
    if value:
        config = parse_config_line(value, f"${CONFIG_ENV_VAR}")
        logger.info(f"Gateway configured from ${CONFIG_ENV_VAR}: region={config.region}")
        return config

    for path in _config_files():
        try:
            text = path.read_text()
        except OSError:
            continue
        config = parse_config_line(text, str(path))
        logger.info(f"Gateway configured from {path}: region={config.region}")
        return config

    region = os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION'))
    if not region:
        raise ConfigurationError(
            f"cannot determine SES region: set ${CONFIG_ENV_VAR}, "
            f"create $HOME/{USER_CONFIG_NAME} or {SYSTEM_CONFIG_FILE}, "
            f"or set $AWS_REGION"
        )
    return GatewayConfig(region=region)


def configure_logging(verbose: bool = False, debug_http: bool = False) -> None:
    """
    Configure the root logger for a command-line run.

    Messages go to stderr (INFO when verbose, WARNING otherwise) and, if it
    can be opened for append, to the log file as well. Handlers installed by
    an earlier call are replaced.

    Args:
        verbose: Log progress to stderr (-v)
        debug_http: Log botocore request/response details (-d http)
    """
    root = logging.getLogger()
    root.setLevel(logging.INFO)

    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    _installed_handlers.append(console_handler)

    log_file = os.environ.get(LOG_FILE_ENV_VAR, DEFAULT_LOG_FILE)
    try:
        file_handler = logging.FileHandler(log_file)
    except OSError:
        # Log file is optional
        file_handler = None
    if file_handler is not None:
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s %(process)d %(levelname)s - %(message)s')
        )
        _installed_handlers.append(file_handler)

    for handler in _installed_handlers:
        root.addHandler(handler)

    if debug_http:
        boto3.set_stream_logger('botocore', logging.DEBUG)
    else:
        # botocore is chatty at INFO (credential lookup etc.)
        logging.getLogger('botocore').setLevel(logging.WARNING)
