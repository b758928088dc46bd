from pathlib import Path
from typing import List

from microcred.models import Microcredential

def save_credential(credential: Microcredential, path: Path) -> None:
    """Write the transport JSON. These bytes are never what gets signed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(credential.to_json(), encoding="utf-8")

def load_credential(path: Path) -> Microcredential:
    if not path.exists():
        raise FileNotFoundError(f"No credential stored at {path}")
    return Microcredential.from_json(path.read_text(encoding="utf-8"))

def load_credentials(directory: Path) -> List[Microcredential]:
    return [load_credential(p) for p in sorted(directory.glob("*.json"))]
