"""
Configuration module for model deviation analysis
=================================================

Centralized configuration management for comparison, alignment and output.
Severity thresholds are fixed constants (see core.severity) and are not part
of the configuration.
"""

import copy
from typing import Dict, Any
from pathlib import Path
import yaml


class ComparisonConfig:
    """Configuration for the deviation analysis pipeline."""

    # Default configuration
    DEFAULT_CONFIG = {
        'comparison': {
            'grid_size': 0.2,  # meters
            'downsample_strategy': 'first',  # 'first' or 'average'
            'neighbor_search': 'kdtree',  # 'kdtree' or 'brute'
            'workers': 1,
        },

        'alignment': {
            'mode': 'none',  # 'none', 'normalize' or 'correspondences'
            'center': True,
            'target_size': 10.0,
            'ground': False,
        },

        'output': {
            'save_json': True,
            'save_csv': True,
            'save_text': True,
            'save_heatmap': True,
            'save_histogram': True,
            'max_report_points': 100,
        },

        'logging': {
            'level': 'INFO',  # DEBUG, INFO, WARNING, ERROR
            'save_to_file': False,
        }
    }

    def __init__(self, config_dict: Dict[str, Any] = None):
        """
        Initialize configuration.

        Args:
            config_dict: Optional configuration dictionary (overrides defaults)
        """
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_dict:
            self._update_nested(self.config, config_dict)

    def _update_nested(self, base: Dict, update: Dict):
        """Recursively update nested dictionary."""
        for key, value in update.items():
            if isinstance(value, dict) and key in base and isinstance(base[key], dict):
                self._update_nested(base[key], value)
            else:
                base[key] = value

    def get(self, *keys):
        """Get nested configuration value."""
        value = self.config
        for key in keys:
            value = value[key]
        return value

    def set(self, *keys, value):
        """Set nested configuration value."""
        config = self.config
        for key in keys[:-1]:
            config = config[key]
        config[keys[-1]] = value

    def calculator_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for DeviationCalculator."""
        return {
            'grid_size': self.get('comparison', 'grid_size'),
            'downsample_strategy': self.get('comparison', 'downsample_strategy'),
            'method': self.get('comparison', 'neighbor_search'),
            'workers': self.get('comparison', 'workers'),
        }

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> 'ComparisonConfig':
        """Load configuration from YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls(config_dict)

    def to_yaml(self, yaml_path: Path):
        """Save configuration to YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.dump(self.config, f, default_flow_style=False, indent=2)

    def to_dict(self) -> Dict[str, Any]:
        """Get configuration as dictionary."""
        return copy.deepcopy(self.config)


# Convenience function
def load_config(yaml_path: Path = None) -> ComparisonConfig:
    """
    Load configuration from YAML or use defaults.

    Args:
        yaml_path: Optional path to YAML config file

    Returns:
        ComparisonConfig instance
    """
    if yaml_path and Path(yaml_path).exists():
        return ComparisonConfig.from_yaml(Path(yaml_path))
    else:
        return ComparisonConfig()
