"""
Writer - serialize the compile receipt to JSON.
"""
import json
from pathlib import Path

from python_buildpack.io.schema import BuildReceipt


def write_receipt(receipt: BuildReceipt, path: Path) -> Path:
    """
    Write *receipt* to *path* as sorted, indented JSON.

    Creates the parent directory if it does not exist.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(
            receipt.model_dump(mode="json"),
            indent=2,
            sort_keys=True,
        )
        + "\n"
    )
    return path
