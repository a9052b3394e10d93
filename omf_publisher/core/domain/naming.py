"""Saneamiento de nombres de assets y canales para OMF."""

from __future__ import annotations

import re

MAX_OMF_NAME_LENGTH = 60

# [ ] | ! ? \ ; ` ´ { } ( ) ' * #
_ILLEGAL_CHARS = re.compile(r"[\[\]|!?\\;`´{}()'*#]")


def sanitize_name(name: str) -> str:
    """Elimina caracteres no permitidos y recorta a 60 caracteres.

    Los caracteres se eliminan, no se escapan. La función es idempotente.
    """
    result = _ILLEGAL_CHARS.sub("", name)
    if len(result) >= MAX_OMF_NAME_LENGTH:
        result = result[:MAX_OMF_NAME_LENGTH]
    return result
