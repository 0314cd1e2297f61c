"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import voluptuous as vol
from dotenv import load_dotenv

from .const import (
	DEFAULT_FANOUT_CONCURRENCY,
	DEFAULT_LOG_LEVEL,
	DEFAULT_REQUEST_TIMEOUT,
	DEFAULT_UPCOMING_TTL,
	ENV_API_BASE_URL,
	ENV_API_TOKEN,
	ENV_FANOUT_CONCURRENCY,
	ENV_LOG_LEVEL,
	ENV_REQUEST_TIMEOUT,
	ENV_TOPIC_CATALOG,
	ENV_UPCOMING_TTL,
)
from .exceptions import LearnPathError
from .topics import load_topic_catalog

_LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

SETTINGS_SCHEMA = vol.Schema(
	{
		vol.Optional(ENV_API_BASE_URL): vol.Url(),
		vol.Optional(ENV_API_TOKEN): str,
		vol.Optional(ENV_REQUEST_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT): vol.All(
			vol.Coerce(float), vol.Range(min=0, min_included=False)
		),
		vol.Optional(ENV_FANOUT_CONCURRENCY, default=DEFAULT_FANOUT_CONCURRENCY): vol.All(
			vol.Coerce(int), vol.Range(min=1)
		),
		vol.Optional(ENV_UPCOMING_TTL, default=DEFAULT_UPCOMING_TTL.total_seconds()): vol.All(
			vol.Coerce(float), vol.Range(min=0)
		),
		vol.Optional(ENV_TOPIC_CATALOG): str,
		vol.Optional(ENV_LOG_LEVEL, default=DEFAULT_LOG_LEVEL): vol.All(vol.Upper, vol.In(LOG_LEVELS)),
	},
	extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class Settings:
	api_base_url: Optional[str] = None
	api_token: Optional[str] = None
	request_timeout: float = DEFAULT_REQUEST_TIMEOUT
	fanout_concurrency: int = DEFAULT_FANOUT_CONCURRENCY
	upcoming_ttl: float = DEFAULT_UPCOMING_TTL.total_seconds()
	topic_catalog_path: Optional[str] = None
	log_level: str = DEFAULT_LOG_LEVEL

	def topic_catalog(self) -> Dict[str, List[str]]:
		"""The static topic fallback, empty when no catalog file is configured."""
		if not self.topic_catalog_path:
			return {}
		return load_topic_catalog(self.topic_catalog_path)


def load_settings(
	env: Optional[Mapping[str, str]] = None,
	dotenv_path: Optional[Union[str, Path]] = None,
) -> Settings:
	"""Validate settings from ``env`` (default: the process environment).

	When reading the process environment a ``.env`` file is loaded first;
	variables already set take precedence over it.
	"""
	if env is None:
		load_dotenv(dotenv_path)
		env = os.environ

	raw: Dict[str, Any] = {key: value for key, value in env.items() if key.startswith("LEARNPATH_") and value != ""}
	try:
		data = SETTINGS_SCHEMA(raw)
	except vol.Invalid as e:
		key = ".".join(str(p) for p in e.path) or "settings"
		raise LearnPathError(f"Invalid configuration for {key}: {e.msg}") from e

	settings = Settings(
		api_base_url=data.get(ENV_API_BASE_URL),
		api_token=data.get(ENV_API_TOKEN),
		request_timeout=data[ENV_REQUEST_TIMEOUT],
		fanout_concurrency=data[ENV_FANOUT_CONCURRENCY],
		upcoming_ttl=data[ENV_UPCOMING_TTL],
		topic_catalog_path=data.get(ENV_TOPIC_CATALOG),
		log_level=data[ENV_LOG_LEVEL],
	)
	_LOGGER.debug(f"Loaded settings: base_url={settings.api_base_url}, timeout={settings.request_timeout}s")
	return settings
