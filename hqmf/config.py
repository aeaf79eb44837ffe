"""
Runtime configuration for the HQMF parser.

Reads settings from the environment; nothing here touches the parse itself.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from hqmf.errors import ConfigurationError

DEFAULT_KNOWLEDGE_DIR = Path(__file__).parent.parent / "knowledge"

_TRUTHY = {"1", "true", "yes", "on"}


class ParserConfig:
  """Configuration for knowledge tables and logging."""

  def __init__(self):
    knowledge_dir = os.environ.get("HQMF_KNOWLEDGE_DIR")
    self.knowledge_dir = Path(knowledge_dir) if knowledge_dir else DEFAULT_KNOWLEDGE_DIR
    self.log_level = os.environ.get("HQMF_LOG_LEVEL", "WARNING").upper()
    self.log_json = os.environ.get("HQMF_LOG_JSON", "").lower() in _TRUTHY

  @property
  def level(self) -> int:
    """Numeric logging level for log_level."""
    return logging.getLevelName(self.log_level)

  def validate(self) -> None:
    """Raise error if not properly configured."""
    if not self.knowledge_dir.is_dir():
      raise ConfigurationError(f"Knowledge directory not found: {self.knowledge_dir}")
    if not isinstance(self.level, int):
      raise ConfigurationError(f"Unknown HQMF_LOG_LEVEL: {self.log_level}")


_config: Optional[ParserConfig] = None


def get_config() -> ParserConfig:
  """Get the parser configuration (singleton)."""
  global _config
  if _config is None:
    _config = ParserConfig()
  return _config


def reset_config() -> None:
  """Reset the configuration singleton (useful for testing)."""
  global _config
  _config = None
