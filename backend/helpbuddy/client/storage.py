import json
import logging
import os
from typing import Optional

from helpbuddy import config

logger = logging.getLogger(__name__)

TOKEN_KEY = "session_token"


class TokenStore:
    """Arquivo local com o token de sessão (o localStorage do cliente)."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.HELPBUDDY_TOKEN_FILE

    def get(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("arquivo de token ilegível (%s): %s", self.path, e)
            return None
        token = data.get(TOKEN_KEY) if isinstance(data, dict) else None
        return token or None

    def set(self, token: str) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({TOKEN_KEY: token}, f)

    def clear(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
