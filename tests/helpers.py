from pathlib import Path

from config import AppConfig
from database import DatabaseManager


def build_db_paths(root: Path) -> dict[str, Path]:
    return {
        "metadata": root / "metadata.sqlite",
        "state": root / "state.sqlite",
    }


def build_manager(root: Path) -> DatabaseManager:
    manager = DatabaseManager(build_db_paths(root))
    manager.initialize()
    return manager


def build_config(root: Path, *extra: str) -> AppConfig:
    config_path = root / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "databases:",
                f"  metadata: \"{(root / 'metadata.sqlite').as_posix()}\"",
                f"  state: \"{(root / 'state.sqlite').as_posix()}\"",
                "paths:",
                f"  logs: \"{(root / 'logs').as_posix()}\"",
                f"  data: \"{(root / 'data').as_posix()}\"",
                "progress:",
                "  enabled: false",
                *extra,
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return AppConfig.load(config_path)
