"""Documentation run configuration."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class DocsConfig:
    """Options for a documentation run."""

    include_orphans: bool = True
    include_implied: bool = True
    infer_implied: bool = False
    output_dir: str = "docs"

    def merged(self, **overrides: Any) -> "DocsConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(path: Optional[str] = None) -> DocsConfig:
    """Load a DocsConfig from YAML. A missing ``path`` yields the defaults."""
    if not path:
        return DocsConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with config_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    if not isinstance(data, dict):
        raise ValueError("Config YAML must parse to an object/map at root.")

    known = {f.name for f in fields(DocsConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config option(s): {', '.join(unknown)}")

    for key in ("include_orphans", "include_implied", "infer_implied"):
        if key in data and not isinstance(data[key], bool):
            raise ValueError(f"Config option '{key}' must be true or false.")

    return DocsConfig(**data)
