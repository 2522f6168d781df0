from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "db_path": "vocab.db",
    "storage_key": "dictionaries",
    "import_encoding": "utf-8",
    "host": "127.0.0.1",
    "port": 8765,
}


@dataclass
class Settings:
    db_path: str = DEFAULTS["db_path"]
    storage_key: str = DEFAULTS["storage_key"]
    import_encoding: str = DEFAULTS["import_encoding"]
    host: str = DEFAULTS["host"]
    port: int = DEFAULTS["port"]

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent

    @property
    def db_full_path(self) -> Path:
        return self.project_root / self.db_path

    def to_dict(self) -> dict:
        return {
            "db_path": self.db_path,
            "storage_key": self.storage_key,
            "import_encoding": self.import_encoding,
            "host": self.host,
            "port": self.port,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
