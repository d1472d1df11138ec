from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class SimParams:
    particle_count: int = 20000
    steps: int = 10
    seed: int = 1

    grav_const: float = 0.001
    softening_floor: float = 0.01  # minimum separation used in the force law

    force_backend: str = "numpy"  # numpy | python
    tile_size: int = 256
    workers: int = 0  # 0 = os.cpu_count()

    dump_path: str = ""  # CSV dump of the final state, empty = off
    quiet: bool = False

    def clamp(self) -> "SimParams":
        self.particle_count = max(1, int(self.particle_count))
        self.steps = max(0, int(self.steps))
        self.seed = int(self.seed)
        self.grav_const = max(0.0, float(self.grav_const))
        self.softening_floor = max(1e-12, float(self.softening_floor))
        self.force_backend = str(self.force_backend or "numpy").strip().lower()
        if self.force_backend not in {"numpy", "python"}:
            self.force_backend = "numpy"
        self.tile_size = max(16, min(4096, int(self.tile_size)))
        self.workers = max(0, min(256, int(self.workers)))
        self.dump_path = str(self.dump_path or "").strip()
        self.quiet = bool(self.quiet)
        return self

    def resolved_workers(self) -> int:
        if self.workers > 0:
            return self.workers
        return os.cpu_count() or 1

    def validate(self) -> list[str]:
        warnings: list[str] = []

        if self.force_backend == "python" and self.particle_count > 2000:
            warnings.append("force_backend=python is very slow above a few thousand particles.")
        if self.steps == 0:
            warnings.append("steps=0: only the initial centre of mass will be reported.")
        if self.particle_count == 1:
            warnings.append("particle_count=1: there are no pairwise interactions.")
        if self.grav_const == 0.0:
            warnings.append("grav_const=0: particles move ballistically.")
        if self.workers > (os.cpu_count() or 1):
            warnings.append("workers exceeds the number of CPUs.")

        return warnings

    @classmethod
    def load(cls, path: str | Path) -> "SimParams":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("The parameter file must contain a JSON object.")
        # Older configs named these after the C constants.
        if "num" in data and "particle_count" not in data:
            data["particle_count"] = data["num"]
        if "timesteps" in data and "steps" not in data:
            data["steps"] = data["timesteps"]
        filtered: dict[str, Any] = {k: v for k, v in data.items() if k in cls.__annotations__}
        return cls(**filtered).clamp()

    def save(self, path: str | Path) -> None:
        data = asdict(self)
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
