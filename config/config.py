import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from zk.zk_proofs import (
    GroupParameters,
    ProtocolConfig,
    ParameterError,
    TOY_GROUP,
    get_group_preset,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class SystemConfig:
    group: GroupParameters = TOY_GROUP
    protocol: ProtocolConfig = field(default_factory=ProtocolConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    log_level: str = "INFO"
    enable_benchmarking: bool = True
    enable_debug_mode: bool = False

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)

        if self.enable_debug_mode:
            self.log_level = "DEBUG"


def _group_from_dict(group_data: Dict[str, Any]) -> GroupParameters:
    """Resolve a preset name or explicit p/g into validated group parameters"""
    if not isinstance(group_data, dict):
        raise ParameterError(f"Group section must be a mapping, got {type(group_data).__name__}")
    if 'preset' in group_data:
        group = get_group_preset(group_data['preset'])
    elif 'p' in group_data and 'g' in group_data:
        try:
            group = GroupParameters(
                p=int(group_data['p']),
                g=int(group_data['g']),
                name=str(group_data.get('name', 'custom')))
        except (TypeError, ValueError) as e:
            raise ParameterError(f"Invalid group parameters: {e}") from e
    else:
        raise ParameterError("Group section needs either 'preset' or both 'p' and 'g'")
    return group.validate()


def _group_to_dict(group: GroupParameters) -> Dict[str, Any]:
    try:
        if get_group_preset(group.name) == group:
            return {'preset': group.name}
    except ParameterError:
        pass
    # p is written as a string so large moduli survive YAML readers
    return {'name': group.name, 'p': str(group.p), 'g': group.g}


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if not config_path.exists():
        return SystemConfig()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config file {config_path}: {e}")
        logger.warning("Using default configuration")
        return SystemConfig()

    if not isinstance(config_data, dict):
        logger.warning(f"Config file {config_path} is not a mapping, using defaults")
        return SystemConfig()

    # Empty sections load as None; group errors propagate as ParameterError
    group = _group_from_dict(config_data.get('group') or {'preset': TOY_GROUP.name})

    protocol_data = config_data.get('protocol') or {}
    if not isinstance(protocol_data, dict):
        raise ParameterError(
            f"Protocol section must be a mapping, got {type(protocol_data).__name__}")
    try:
        protocol = ProtocolConfig(
            rounds=protocol_data.get('rounds', 1),
            target_security_bits=protocol_data.get('target_security_bits'),
            parallel_workers=protocol_data.get('parallel_workers', 1)
        )
    except TypeError as e:
        raise ParameterError(f"Invalid protocol settings: {e}") from e

    return SystemConfig(
        group=group,
        protocol=protocol,
        log_dir=Path(config_data.get('log_dir', 'logs')),
        results_dir=Path(config_data.get('results_dir', 'results')),
        log_level=config_data.get('log_level', 'INFO'),
        enable_benchmarking=config_data.get('enable_benchmarking', True),
        enable_debug_mode=config_data.get('enable_debug_mode', False)
    )


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    config_data = {
        'group': _group_to_dict(config.group),
        'protocol': {
            'rounds': config.protocol.rounds,
            'target_security_bits': config.protocol.target_security_bits,
            'parallel_workers': config.protocol.parallel_workers
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'log_level': config.log_level,
        'enable_benchmarking': config.enable_benchmarking,
        'enable_debug_mode': config.enable_debug_mode
    }

    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config_data, f, default_flow_style=False)
    except OSError as e:
        logger.warning(f"Could not save config file {config_path}: {e}")
