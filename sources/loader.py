"""Crawl profile loader for SiteFoundry.

Loads and validates crawl profiles from YAML files so recurring crawls can
be started by name from the CLI.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class SourceConfig:
    """A named crawl profile; limits are clamped later by CrawlOptions."""
    name: str
    start_url: str
    namespace: Optional[str] = None
    path_prefix: Optional[str] = None
    max_depth: Optional[int] = None
    max_pages: Optional[int] = None
    delay_ms: Optional[int] = None
    title: Optional[str] = None
    enabled: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.name:
            raise ValueError("Source name cannot be empty")
        if not self.start_url:
            raise ValueError("Source must have a start_url")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceConfig':
        """Create SourceConfig from dictionary."""
        return cls(
            name=data['name'],
            start_url=data['start_url'],
            namespace=data.get('namespace'),
            path_prefix=data.get('path_prefix'),
            max_depth=data.get('max_depth'),
            max_pages=data.get('max_pages'),
            delay_ms=data.get('delay_ms'),
            title=data.get('title'),
            enabled=data.get('enabled', True)
        )

    def to_request(self) -> Dict[str, Any]:
        """Crawl request fields, omitting unset ones."""
        fields = {
            'start_url': self.start_url,
            'namespace': self.namespace,
            'path_prefix': self.path_prefix,
            'max_depth': self.max_depth,
            'max_pages': self.max_pages,
            'delay_ms': self.delay_ms,
            'title': self.title,
        }
        return {key: value for key, value in fields.items() if value is not None}


class SourceLoader:
    """Loads crawl profiles from YAML files."""

    def __init__(self, sources_dir: Optional[Path] = None):
        """Initialize source loader.

        Args:
            sources_dir: Directory containing profile YAML files.
                        Defaults to the directory of this module.
        """
        if sources_dir is None:
            sources_dir = Path(__file__).parent
        self.sources_dir = Path(sources_dir)

    def _resolve(self, source: str) -> Path:
        candidate = Path(source)
        if candidate.suffix in {'.yaml', '.yml'}:
            return candidate
        return self.sources_dir / f"{source}.yaml"

    def load_source_config(self, source: str) -> Optional[SourceConfig]:
        """Load a profile by name or by YAML path.

        Returns:
            SourceConfig if found and valid, None otherwise
        """
        yaml_file = self._resolve(source)
        if not yaml_file.exists():
            logger.warning(f"Source configuration not found: {yaml_file}")
            return None

        try:
            with open(yaml_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML file {yaml_file}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Empty or invalid YAML file: {yaml_file}")
            return None

        data.setdefault('name', yaml_file.stem)
        try:
            config = SourceConfig.from_dict(data)
        except (ValueError, KeyError) as e:
            logger.error(f"Invalid source configuration in {yaml_file}: {e}")
            return None

        if not config.enabled:
            logger.warning(f"Source {config.name} is disabled")
            return None

        logger.info(f"Loaded source configuration: {config.name}")
        return config

    def load_all_sources(self) -> Dict[str, SourceConfig]:
        """Load every enabled profile in the sources directory."""
        sources = {}
        if not self.sources_dir.exists():
            logger.warning(f"Sources directory not found: {self.sources_dir}")
            return sources

        for yaml_file in sorted(self.sources_dir.glob("*.yaml")):
            config = self.load_source_config(str(yaml_file))
            if config:
                sources[config.name] = config
        return sources


# Global source loader instance
_source_loader = SourceLoader()


def load_source_config(source: str) -> Optional[SourceConfig]:
    """Convenience function to load a crawl profile by name or path."""
    return _source_loader.load_source_config(source)


def load_all_sources() -> Dict[str, SourceConfig]:
    """Convenience function to load all crawl profiles."""
    return _source_loader.load_all_sources()
