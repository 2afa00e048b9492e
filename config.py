import os
from dataclasses import dataclass, field
from typing import List, Optional


DEFAULT_API_URL = 'https://api.vimeo.com'
DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024


@dataclass
class Config:
    data_dir: str
    api_url: str
    access_token: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    token_file: str
    redirect_uri: str

    chunk_size: int
    max_retries: int
    backoff_sec: float
    backoff_max_sec: float
    http_timeout_sec: float
    log_level: str
    scopes: List[str] = field(default_factory=list)

    def ensure_dirs(self) -> None:
        for d in [
            self.data_dir,
            os.path.dirname(self.token_file) or self.data_dir,
        ]:
            os.makedirs(d, exist_ok=True)


def getenv_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)).strip())
    except Exception:
        return default


def getenv_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)).strip())
    except Exception:
        return default


def load_config() -> Config:
    data_dir = os.getenv('DATA_DIR', 'data').strip()

    cfg = Config(
        data_dir=data_dir,
        api_url=(os.getenv('VIMEO_API_URL') or DEFAULT_API_URL).strip().rstrip('/'),
        access_token=(os.getenv('VIMEO_ACCESS_TOKEN') or '').strip() or None,
        client_id=(os.getenv('VIMEO_CLIENT_ID') or '').strip() or None,
        client_secret=(os.getenv('VIMEO_CLIENT_SECRET') or '').strip() or None,
        token_file=(os.getenv('VIMEO_TOKEN_FILE') or os.path.join(data_dir, 'vimeo_token.json')).strip(),
        redirect_uri=(os.getenv('VIMEO_REDIRECT_URI') or 'http://localhost:8765/').strip(),
        scopes=(os.getenv('VIMEO_SCOPES') or 'public private upload edit delete').split(),
        chunk_size=max(1, getenv_int('UPLOAD_CHUNK_SIZE', DEFAULT_CHUNK_SIZE)),
        max_retries=max(0, getenv_int('UPLOAD_MAX_RETRIES', 5)),
        backoff_sec=getenv_float('UPLOAD_BACKOFF_SEC', 1.0),
        backoff_max_sec=getenv_float('UPLOAD_BACKOFF_MAX_SEC', 64.0),
        http_timeout_sec=getenv_float('HTTP_TIMEOUT_SEC', 30.0),
        log_level=os.getenv('LOG_LEVEL', 'INFO').strip().upper(),
    )
    return cfg
