"""
Serialization of bastion descriptors for SSH config templating.
"""

import json
from pathlib import Path
from typing import List, Union

import yaml

from .bastion import BastionHost

FORMATS = ("yaml", "json")


def dump_bastions(bastions: List[BastionHost], fmt: str = "yaml") -> str:
    """
    Render bastion descriptors as a YAML or JSON document.

    The document is a mapping with a single "bastions" list.

    Raises:
        ValueError: If fmt is not a supported format
    """
    data = {"bastions": [bastion.to_dict() for bastion in bastions]}

    if fmt == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    raise ValueError(f"Unknown output format: {fmt}. Expected one of {', '.join(FORMATS)}")


def write_bastions(bastions: List[BastionHost], path: Union[str, Path], fmt: str = "yaml") -> Path:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w") as f:
        f.write(dump_bastions(bastions, fmt))
    return output
