from __future__ import annotations

import os
import re


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, "1" if default else "0").strip() == "1"


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    try:
        value = int(os.getenv(name, str(default)).strip())
    except ValueError:
        print(f"[CFG] {name} is not an integer; using {default}")
        value = int(default)
    if minimum is not None and value < minimum:
        value = minimum
    return value


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    try:
        value = float(os.getenv(name, str(default)).strip())
    except ValueError:
        print(f"[CFG] {name} is not a number; using {default}")
        value = float(default)
    if minimum is not None and value < minimum:
        value = minimum
    return value
