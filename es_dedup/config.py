# config.py

import logging
from configparser import ConfigParser
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_CONFIG_PATH = 'config.ini'

# Indices cleaned when none are configured
DEFAULT_INDICES = ['elastic_search_en', 'elastic_search_er']

AGGREGATION_MODES = ('terms', 'composite')
KEEP_POLICIES = ('first', 'lowest_id')

@dataclass
class Settings:
    # Elasticsearch connection
    cloud_id: Optional[str] = None
    hosts: List[str] = field(default_factory=lambda: ['http://localhost:9200'])
    username: Optional[str] = None
    password: Optional[str] = None
    request_timeout: int = 30

    # Dedup job
    indices: List[str] = field(default_factory=lambda: list(DEFAULT_INDICES))
    key_field: str = 'databaseId'
    max_terms: int = 1000000
    aggregation: str = 'terms'
    page_size: int = 1000
    fetch_size: int = 10000
    keep: str = 'first'
    dry_run: bool = False
    workers: int = 1

    log_level: str = 'INFO'

    def validate(self):
        if not self.indices:
            raise ValueError("At least one index must be configured under [dedup] indices")
        if not self.key_field:
            raise ValueError("[dedup] field must not be empty")
        if self.aggregation not in AGGREGATION_MODES:
            raise ValueError(f"Unknown aggregation mode '{self.aggregation}', expected one of {AGGREGATION_MODES}")
        if self.keep not in KEEP_POLICIES:
            raise ValueError(f"Unknown keep policy '{self.keep}', expected one of {KEEP_POLICIES}")
        for name in ('max_terms', 'page_size', 'fetch_size', 'workers', 'request_timeout'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer")
        if not self.cloud_id and not self.hosts:
            raise ValueError("Either [elasticsearch] cloud_id or hosts must be set")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level '{self.log_level}'")
        return self

def split_list(value):
    return [item.strip() for item in value.split(',') if item.strip()]

def load_settings(path=DEFAULT_CONFIG_PATH) -> Settings:
    """
    Reads config.ini into a Settings object. Missing files, sections and keys
    fall back to the defaults.
    """
    config = ConfigParser()
    config.read(path)

    defaults = Settings()
    settings = Settings(
        cloud_id=config.get('elasticsearch', 'cloud_id', fallback='') or None,
        hosts=split_list(config.get('elasticsearch', 'hosts', fallback=','.join(defaults.hosts))),
        username=config.get('elasticsearch', 'username', fallback='') or None,
        password=config.get('elasticsearch', 'password', fallback='') or None,
        request_timeout=config.getint('elasticsearch', 'request_timeout', fallback=defaults.request_timeout),

        indices=split_list(config.get('dedup', 'indices', fallback=','.join(defaults.indices))),
        key_field=config.get('dedup', 'field', fallback=defaults.key_field).strip(),
        max_terms=config.getint('dedup', 'max_terms', fallback=defaults.max_terms),
        aggregation=config.get('dedup', 'aggregation', fallback=defaults.aggregation).strip(),
        page_size=config.getint('dedup', 'page_size', fallback=defaults.page_size),
        fetch_size=config.getint('dedup', 'fetch_size', fallback=defaults.fetch_size),
        keep=config.get('dedup', 'keep', fallback=defaults.keep).strip(),
        dry_run=config.getboolean('dedup', 'dry_run', fallback=defaults.dry_run),
        workers=config.getint('dedup', 'workers', fallback=defaults.workers),

        log_level=config.get('logging', 'level', fallback=defaults.log_level).strip(),
    )
    return settings.validate()
