from .io import ensure_dir, read_json, write_json, load_access_token, save_access_token
from .logs import debug, log, warn, err
