"""
Configuration loader for the Motor Controller Local Server
Loads and validates configuration from YAML files
"""

import copy
import ipaddress
import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINTS = [
    {'path': '/status', 'method': 'GET'},
    {'path': '/', 'method': 'GET'},
    {'path': '/command', 'method': 'GET'},
    {'path': '/arduino', 'method': 'GET'},
]

DEFAULT_KEYWORDS = ['arduino', 'motor', 'command', 'status', 'armed', 'running', 'currentmotor']

ALLOWED_METHODS = {'GET', 'HEAD', 'POST', 'OPTIONS'}

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist and hold sane values"""
    required_sections = ['discovery', 'device']

    for section in required_sections:
        if section not in config or not isinstance(config[section], dict):
            raise ValueError(f"Missing required configuration section: {section}")

    discovery = config['discovery']
    device = config['device']

    port = device.get('port', 80)
    if not isinstance(port, int) or not 1 <= port <= 65535:
        raise ValueError(f"device.port must be between 1 and 65535, got {port!r}")

    timeout_fields = [
        ('discovery', discovery, ['probe_timeout_seconds', 'task_timeout_seconds']),
        ('device', device, ['command_timeout_seconds', 'status_timeout_seconds']),
    ]
    for section_name, section, fields in timeout_fields:
        for field in fields:
            value = section.get(field)
            if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                raise ValueError(f"{section_name}.{field} must be a positive number, got {value!r}")

    max_concurrency = discovery.get('max_concurrency')
    if max_concurrency is not None and (not isinstance(max_concurrency, int) or max_concurrency < 1):
        raise ValueError("discovery.max_concurrency must be a positive integer")

    if 'endpoints' in discovery:
        _validate_endpoints(discovery['endpoints'])

    for field in ['network', 'fallback_network']:
        if discovery.get(field):
            _validate_ip_range(discovery[field], f"discovery.{field}")

    fallback_ip = device.get('fallback_ip')
    if fallback_ip:
        try:
            ipaddress.IPv4Address(fallback_ip)
        except ipaddress.AddressValueError:
            raise ValueError(f"device.fallback_ip is not an IPv4 address: {fallback_ip}")

def _validate_endpoints(endpoints) -> None:
    if not isinstance(endpoints, list) or not endpoints:
        raise ValueError("discovery.endpoints must be a non-empty list")
    for endpoint in endpoints:
        if not isinstance(endpoint, dict) or not str(endpoint.get('path', '')).startswith('/'):
            raise ValueError(f"Invalid endpoint entry (needs a path starting with '/'): {endpoint!r}")
        method = str(endpoint.get('method', 'GET')).upper()
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported probe method {method} for {endpoint['path']}")

def _validate_ip_range(ip_range: str, name: str) -> None:
    try:
        if '-' in ip_range:
            start_ip, end_ip = ip_range.split('-')
            if ipaddress.IPv4Address(start_ip.strip()) > ipaddress.IPv4Address(end_ip.strip()):
                raise ValueError(f"{name} range start is after its end")
        else:
            ipaddress.IPv4Network(ip_range.strip(), strict=False)
    except ValueError as e:
        raise ValueError(f"Invalid {name}: {ip_range} ({e})")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Device defaults
    device_defaults = {
        'port': 80,
        'fallback_ip': None,
        'command_endpoint': '/command',
        'status_endpoint': '/status',
        'command_timeout_seconds': 5,
        'status_timeout_seconds': 3
    }
    for key, default_value in device_defaults.items():
        if key not in config['device']:
            config['device'][key] = default_value

    # Discovery defaults
    discovery_defaults = {
        'port': config['device']['port'],
        'probe_timeout_seconds': 2.0,
        'task_timeout_seconds': 1.0,
        'max_concurrency': 256,
        'endpoints': copy.deepcopy(DEFAULT_ENDPOINTS),
        'keywords': list(DEFAULT_KEYWORDS),
        'require_keyword_match': False,
        'network': None,
        'fallback_network': '192.168.1.0/24',
        'scan_on_startup': True,
        'scan_interval_minutes': 0
    }
    for key, default_value in discovery_defaults.items():
        if key not in config['discovery']:
            config['discovery'][key] = default_value

    # Upload defaults
    if 'upload' not in config:
        config['upload'] = {}
    upload_defaults = {
        'cli_path': 'arduino-cli',
        'board': 'arduino:renesas_uno:unor4wifi',
        'port': '',
        'compile_timeout_seconds': 60,
        'upload_timeout_seconds': 120
    }
    for key, default_value in upload_defaults.items():
        if key not in config['upload']:
            config['upload'][key] = default_value

    # API defaults
    if 'api' not in config:
        config['api'] = {}
    api_defaults = {
        'host': '0.0.0.0',
        'port': 3000,
        'cors_origins': ['*']
    }
    for key, default_value in api_defaults.items():
        if key not in config['api']:
            config['api'][key] = default_value

    # Logging defaults
    if 'logging' not in config:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/motor_server.log',
        'console_output': True,
        'timezone': 'America/New_York'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a fixed local timezone"""

    def __init__(self, fmt=None, tz_name: str = 'America/New_York'):
        super().__init__(fmt)
        # pytz zones handle DST transitions automatically
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with local-timezone timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')
    tz_name = log_config.get('timezone', 'America/New_York')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, tz_name)

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Per-probe failures are logged at DEBUG; keep aiohttp's own chatter out of INFO
    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    logger.info(f"Logging configured ({tz_name} timestamps): level={level}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "discovery": {
            "probe_timeout_seconds": 2.0,
            "task_timeout_seconds": 1.0,
            "max_concurrency": 256,
            "endpoints": copy.deepcopy(DEFAULT_ENDPOINTS),
            "keywords": list(DEFAULT_KEYWORDS),
            "require_keyword_match": False,
            "network": None,                         # None = /24 of the local interface
            "fallback_network": "192.168.1.0/24",    # Used when no interface is found
            "scan_on_startup": True,
            "scan_interval_minutes": 0               # 0 disables periodic rescans
        },
        "device": {
            "port": 80,
            "fallback_ip": "192.168.1.100",
            "command_endpoint": "/command",
            "status_endpoint": "/status",
            "command_timeout_seconds": 5,
            "status_timeout_seconds": 3
        },
        "upload": {
            "cli_path": "arduino-cli",
            "board": "arduino:renesas_uno:unor4wifi",
            "port": "",                              # e.g. /dev/ttyACM0; empty = compile only
            "compile_timeout_seconds": 60,
            "upload_timeout_seconds": 120
        },
        "api": {
            "host": "0.0.0.0",
            "port": 3000,
            "cors_origins": ["*"]
        },
        "logging": {
            "level": "INFO",
            "file": "logs/motor_server.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
