from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Union

from .errors import ConfigError


def _parse_names_mapping(lines: List[str]) -> Dict[int, str]:
    names: Dict[int, str] = {}
    in_names = False
    for line in lines:
        if line == "names:":
            in_names = True
            continue
        if not in_names or ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        if not left.isdigit():
            # next top-level key ends the block
            if not line.startswith((" ", "\t")):
                in_names = False
            continue
        names[int(left)] = right.strip().strip("'").strip('"')
    return names


def load_label_table(path: Union[str, Path]) -> List[str]:
    """
    Load the label table (index = class id).

    Two formats are accepted. A metadata file with a `names:` mapping:

        names:
          0: person
          1: bicycle

    or a plain text file with one label per line, in class id order.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Label file not found: {path}")

    raw_lines = path.read_text(encoding="utf-8").splitlines()
    lines = [ln.rstrip() for ln in raw_lines if ln.strip() and not ln.strip().startswith("#")]

    if "names:" in lines:
        names = _parse_names_mapping(lines)
        if not names:
            raise ConfigError(f"No labels under `names:` in {path}")
        expected = list(range(len(names)))
        if sorted(names) != expected:
            missing = sorted(set(range(max(names) + 1)) - set(names))
            raise ConfigError(f"Label ids must be contiguous from 0; missing {missing} in {path}")
        return [names[i] for i in expected]

    return [ln.strip() for ln in lines]
