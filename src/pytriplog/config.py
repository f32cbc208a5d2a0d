"""Client configuration for pytriplog."""

from __future__ import annotations

import dataclasses
import os
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pytriplog.exceptions import TripLogConfigError

SHEET_CSV_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv"
DEFAULT_NOTE = "No notes provided"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def parse_drivers(value: str) -> dict[str, str]:
    """Parse ``"Alice:1234,Bob:5678"`` into a name → PIN mapping."""
    drivers: dict[str, str] = {}
    for chunk in value.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, sep, pin = chunk.partition(":")
        name = name.strip()
        if not sep or not name:
            raise TripLogConfigError(f"driver entry must look like 'Name:PIN', got {chunk!r}")
        drivers[name] = pin.strip()
    return drivers


@dataclasses.dataclass(frozen=True)
class FormFieldMap:
    """Form field ids the relay posts to.

    These correspond to the ``entry.<id>`` inputs of the shared
    response form that feeds the spreadsheet mirror.
    """

    driver_name: str = "entry.765257113"
    mileage: str = "entry.1493291277"
    timestamp: str = "entry.656566019"


@dataclasses.dataclass(frozen=True)
class TripLogConfig:
    """Trip log configuration.

    Parameters
    ----------
    drivers : dict[str, str]
        Known drivers mapped to their PIN. Names keep their exact case.
    store_path : str
        Path of the JSON file backing :class:`~pytriplog.store.JsonFileStore`.
    sheet_id : str or None
        Spreadsheet id of the mirror. ``None`` disables the mirror unless
        ``sheet_csv_url`` is given explicitly.
    sheet_csv_url : str or None
        CSV export URL. Derived from ``sheet_id`` when omitted.
    form_action_url : str or None
        ``formResponse`` URL the relay posts to. ``None`` disables the relay.
    form_fields : FormFieldMap
        Relay form field ids.
    gemini_api_key : str or None
        API key for note suggestions.
    gemini_model : str
        Model name used for note suggestions.
    time_zone : str or None
        IANA time zone for relay timestamps and report windows.
        ``None`` uses the host's local time.
    submit_min_delay : float
        Minimum seconds a submission takes, joined with the relay call.
    mirror_enabled : bool
        Consult the spreadsheet mirror during validation.
    relay_enabled : bool
        Forward accepted trips to the response form.
    http_timeout : float
        Total timeout in seconds for each outbound HTTP request.
    default_note : str
        Note stored when the driver leaves it empty.
    """

    drivers: dict[str, str] = dataclasses.field(default_factory=dict)
    store_path: str = "triplog.json"
    sheet_id: str | None = None
    sheet_csv_url: str | None = None
    form_action_url: str | None = None
    form_fields: FormFieldMap = dataclasses.field(default_factory=FormFieldMap)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    time_zone: str | None = None
    submit_min_delay: float = 0.6
    mirror_enabled: bool = True
    relay_enabled: bool = True
    http_timeout: float = 10.0
    default_note: str = DEFAULT_NOTE

    def __post_init__(self) -> None:
        if self.sheet_csv_url is None and self.sheet_id:
            object.__setattr__(self, "sheet_csv_url", SHEET_CSV_URL_TEMPLATE.format(sheet_id=self.sheet_id))
        if self.submit_min_delay < 0:
            raise TripLogConfigError("submit_min_delay must be >= 0")
        if self.http_timeout <= 0:
            raise TripLogConfigError("http_timeout must be > 0")
        if self.time_zone:
            try:
                ZoneInfo(self.time_zone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise TripLogConfigError(f"Unknown time_zone {self.time_zone!r}") from exc

    @property
    def mirror_configured(self) -> bool:
        return self.mirror_enabled and bool(self.sheet_csv_url)

    @property
    def relay_configured(self) -> bool:
        return self.relay_enabled and bool(self.form_action_url)

    @classmethod
    def from_env(cls, **overrides: Any) -> TripLogConfig:
        """Create configuration from environment variables.

        Reads ``TRIPLOG_DRIVERS`` (``"Name:PIN,Name:PIN"``) and optional
        ``TRIPLOG_*`` variables. Explicit keyword arguments override
        environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TripLogConfig
            Populated configuration.
        """
        env = os.environ

        form_kwargs: dict[str, str] = {}
        _ENV_FORM_MAP = {
            "TRIPLOG_FORM_FIELD_DRIVER": "driver_name",
            "TRIPLOG_FORM_FIELD_MILEAGE": "mileage",
            "TRIPLOG_FORM_FIELD_TIMESTAMP": "timestamp",
        }
        for env_key, field_name in _ENV_FORM_MAP.items():
            val = env.get(env_key)
            if val is not None:
                form_kwargs[field_name] = val

        form_overrides = overrides.pop("form_fields", None)
        if isinstance(form_overrides, dict):
            form_kwargs.update(form_overrides)
        elif isinstance(form_overrides, FormFieldMap):
            form_kwargs = dataclasses.asdict(form_overrides)

        config_kwargs: dict[str, Any] = {"form_fields": FormFieldMap(**form_kwargs)}

        _ENV_CONFIG_MAP = {
            "TRIPLOG_STORE_PATH": "store_path",
            "TRIPLOG_SHEET_ID": "sheet_id",
            "TRIPLOG_SHEET_CSV_URL": "sheet_csv_url",
            "TRIPLOG_FORM_ACTION_URL": "form_action_url",
            "TRIPLOG_GEMINI_API_KEY": "gemini_api_key",
            "TRIPLOG_GEMINI_MODEL": "gemini_model",
            "TRIPLOG_TIME_ZONE": "time_zone",
            "TRIPLOG_DEFAULT_NOTE": "default_note",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        drivers_env = env.get("TRIPLOG_DRIVERS")
        if drivers_env is not None and "drivers" not in overrides:
            config_kwargs["drivers"] = parse_drivers(drivers_env)

        try:
            delay_env = env.get("TRIPLOG_SUBMIT_MIN_DELAY")
            if delay_env is not None and "submit_min_delay" not in overrides:
                config_kwargs["submit_min_delay"] = float(delay_env)

            timeout_env = env.get("TRIPLOG_HTTP_TIMEOUT")
            if timeout_env is not None and "http_timeout" not in overrides:
                config_kwargs["http_timeout"] = float(timeout_env)
        except ValueError as exc:
            raise TripLogConfigError(f"invalid numeric setting: {exc}") from exc

        if "mirror_enabled" not in overrides:
            config_kwargs["mirror_enabled"] = _env_bool(env.get("TRIPLOG_MIRROR_ENABLED"), True)

        if "relay_enabled" not in overrides:
            config_kwargs["relay_enabled"] = _env_bool(env.get("TRIPLOG_RELAY_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
