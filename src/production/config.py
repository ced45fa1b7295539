"""Runtime settings for the production context.

Values come from the ``[custom]`` table of ``domain.toml`` and can be
overridden per process with ``PRODUCTION_<NAME>`` environment variables.
"""

import os

from protean.utils.globals import current_domain

DEFAULTS = {
    "platform_fee_rate": 0.10,
    "refund_window_days": 30,
    "lock_timeout_seconds": 5.0,
}


def setting(name: str):
    """Return the effective value of a production setting."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown production setting: {name}")

    default = DEFAULTS[name]
    cast = type(default)

    env_value = os.environ.get(f"PRODUCTION_{name.upper()}")
    if env_value is not None:
        return cast(env_value)

    custom = current_domain.config.get("custom") or {}
    value = custom.get(name)
    return default if value is None else cast(value)


def platform_fee_rate() -> float:
    return setting("platform_fee_rate")


def refund_window_days() -> int:
    return setting("refund_window_days")


def lock_timeout_seconds() -> float:
    return setting("lock_timeout_seconds")
