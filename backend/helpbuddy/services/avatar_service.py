import secrets
import string
from urllib.parse import urlencode

DICEBEAR_BASE = "https://api.dicebear.com/7.x"

# estilos do seletor de ThriveSprite
AVATAR_STYLES = [
    "fun-emoji",
    "adventurer",
    "big-smile",
    "bottts",
    "croodles-neutral",
]
DEFAULT_AVATAR_STYLE = "fun-emoji"

ROLE_LABELS = {
    "student": "Aluno",
    "parent": "Responsável",
    "educator": "Educador",
}

_SEED_ALPHABET = string.ascii_lowercase + string.digits


def random_seed(length: int = 6) -> str:
    return "".join(secrets.choice(_SEED_ALPHABET) for _ in range(length))


def avatar_url(style: str, seed: str, size: int = 120, transparent: bool = False) -> str:
    params = {"seed": seed, "size": size}
    if transparent:
        params["backgroundColor"] = "transparent"
    return f"{DICEBEAR_BASE}/{style}/svg?{urlencode(params)}"


def avatar_options(size: int = 120) -> list[str]:
    """Uma opção por estilo, cada uma com semente nova."""
    return [avatar_url(style, random_seed(), size, transparent=True) for style in AVATAR_STYLES]


def default_avatar_url(username: str, size: int = 120) -> str:
    return avatar_url(DEFAULT_AVATAR_STYLE, username, size)


def role_label(role: str) -> str:
    return ROLE_LABELS.get(role, role)
