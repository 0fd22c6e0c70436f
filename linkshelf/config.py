"""
Configuration management for linkshelf.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/linkshelf/config.toml) and local
(linkshelf.toml) configurations.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict

from linkshelf import constants


@dataclass
class LinkshelfConfig:
    """
    linkshelf configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (LINKSHELF_*)
    3. Local config file (./linkshelf.toml or ./.linkshelfrc)
    4. User config file (~/.config/linkshelf/config.toml)
    5. System defaults
    """

    # Library file
    library: str = field(default="linkshelf.json")

    # Network settings
    timeout: int = field(default=constants.DEFAULT_REQUEST_TIMEOUT)
    user_agent: str = field(default="Mozilla/5.0 (compatible; linkshelf/0.1)")
    html_proxy: str = field(default=constants.HTML_PROXY_TEMPLATE)
    markdown_proxy: str = field(default=constants.MARKDOWN_PROXY_TEMPLATE)
    min_html_length: int = field(default=constants.MIN_HTML_LENGTH)

    # Placeholders
    placeholder_title: str = field(default=constants.PLACEHOLDER_TITLE)
    placeholder_image: str = field(default=constants.PLACEHOLDER_IMAGE)

    # Performance
    max_workers: int = field(default=constants.DEFAULT_MAX_WORKERS)

    # Display settings
    output_format: str = field(default="table")  # table, json, urls
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "LinkshelfConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "linkshelf" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_paths = [
            Path.cwd() / "linkshelf.toml",
            Path.cwd() / ".linkshelfrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with LINKSHELF_ prefix."""
        prefix = "LINKSHELF_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if hasattr(self, config_key):
                    current_value = getattr(self, config_key)
                    if isinstance(current_value, bool):
                        setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                    elif isinstance(current_value, int):
                        setattr(self, config_key, int(value))
                    else:
                        setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in the library path."""
        self.library = os.path.expanduser(os.path.expandvars(self.library))

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = Path.home() / ".config" / "linkshelf" / "config.toml"

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "wb") as f:
            tomli_w.dump(asdict(self), f)

    def get_library_path(self) -> Path:
        """Get the resolved library path."""
        path = Path(self.library)
        if not path.is_absolute():
            path = Path.cwd() / path
        return path


# Global configuration instance
_config: Optional[LinkshelfConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> LinkshelfConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = LinkshelfConfig.load(config_file)
    return _config


def init_config(library: Optional[str] = None, **kwargs) -> LinkshelfConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        library: Library path override
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config()

    if library:
        config.library = library

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
