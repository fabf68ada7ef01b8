"""Configuration manager: load, save and validate the engine configuration.

Uses ruamel.yaml for YAML serialisation with section comments.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional

from rich.console import Console
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from config.schema import EngineConfig

console = Console()
yaml = YAML()
yaml.default_flow_style = False
yaml.width = 120


# ─── YAML COMMENTS ───

_YAML_HEADER = f"""\
# ============================================
# Timetable engine configuration
# Created: {date.today().isoformat()}
# ============================================
"""

_SECTION_COMMENTS = {
    "genetic": (
        "Genetic search",
        "Population, generations, mutation/crossover rates, elitism,\n"
        "diversity and stagnation handling. seed: null = nondeterministic.",
    ),
    "repair": (
        "Conflict repair",
        None,
    ),
    "fitness": (
        "Fitness",
        "Objective weights (sum to 1.0) and flat penalties. Higher fitness is better.",
    ),
}


class ConfigManager:
    CONFIG_DIR = Path("config")
    DEFAULT_CONFIG = CONFIG_DIR / "engine_config.yaml"

    def __init__(self, path: Optional[Path] = None) -> None:
        if path is not None:
            self.DEFAULT_CONFIG = Path(path)

    def first_run_check(self) -> bool:
        """True when no configuration file exists yet."""
        return not self.DEFAULT_CONFIG.exists()

    # ─── Load ───

    def load(self, path: Optional[Path] = None) -> EngineConfig:
        """Load the configuration from YAML. Validated by pydantic."""
        target = Path(path) if path is not None else self.DEFAULT_CONFIG
        if not target.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {target}\n"
                f"Run 'python main.py config init' to create one."
            )
        with open(target, "r", encoding="utf-8") as f:
            raw = yaml.load(f)
        try:
            return EngineConfig.model_validate(dict(raw or {}))
        except Exception as e:
            raise ValueError(
                f"Invalid configuration file: {target}\n"
                f"Pydantic error: {e}"
            ) from e

    def load_or_default(self, path: Optional[Path] = None) -> EngineConfig:
        """Load the configuration, falling back to the defaults when absent."""
        target = Path(path) if path is not None else self.DEFAULT_CONFIG
        if not target.exists():
            return EngineConfig()
        return self.load(target)

    # ─── Save ───

    def save(self, config: EngineConfig, path: Optional[Path] = None) -> Path:
        """Save the configuration as commented YAML."""
        target = Path(path) if path is not None else self.DEFAULT_CONFIG
        target.parent.mkdir(parents=True, exist_ok=True)

        data = self._build_commented_yaml(config)

        with open(target, "w", encoding="utf-8") as f:
            f.write(_YAML_HEADER + "\n")
            yaml.dump(data, f)

        console.print(f"[green]✓[/green] Configuration saved: {target}")
        return target

    def _build_commented_yaml(self, config: EngineConfig) -> CommentedMap:
        """Build the YAML structure with section comments."""
        raw = json.loads(config.model_dump_json())
        cm = CommentedMap(raw)

        for field, (label, comment) in _SECTION_COMMENTS.items():
            cm.yaml_set_comment_before_after_key(
                field,
                before=f"\n─── {label} ───" + (f"\n{comment}" if comment else ""),
            )

        if "genetic" in cm:
            genetic_map = CommentedMap(cm["genetic"])
            genetic_map.yaml_add_eol_comment("fixed stopping criterion", "generations")
            cm["genetic"] = genetic_map

        return cm
