import json
import os
from typing import Any, Dict, Optional


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def read_json(path: str, default: Any = None) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        return default


def write_json(path: str, data: Any) -> None:
    ensure_dir(os.path.dirname(path) or '.')
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_access_token(path: str) -> Optional[str]:
    """Return the access token persisted by the authorization flow, if any."""
    data: Dict[str, Any] = read_json(path, default={}) or {}
    token = data.get('access_token')
    return str(token) if token else None


def save_access_token(path: str, token: Dict[str, Any]) -> None:
    # only the fields needed to rebuild a bearer session
    keep = {k: token[k] for k in ('access_token', 'token_type', 'scope') if k in token}
    write_json(path, keep)
