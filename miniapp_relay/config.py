from dataclasses import dataclass


@dataclass
class Config:
    telegram_token: str
    webapp_url: str = ""
    init_data_max_age: int = 0


def _parse_int(raw: str, name: str) -> int:
    """Parse a non-negative int option, treating blank as 0."""
    raw = raw.strip()
    if not raw:
        return 0
    value = int(raw)
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def load_config(config) -> Config:
    """Build a Config from a parsed configparser object."""
    section = config["TELEGRAM"]
    telegram_token = section["bot_token"].strip()
    if not telegram_token:
        raise ValueError("TELEGRAM.bot_token must not be empty")

    webapp_url = section.get("webapp_url", "").strip()
    init_data_max_age = _parse_int(section.get("init_data_max_age", "0"), "init_data_max_age")

    return Config(
        telegram_token=telegram_token,
        webapp_url=webapp_url,
        init_data_max_age=init_data_max_age,
    )
