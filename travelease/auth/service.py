"""Authentification (collaborateur externe): résolution d'un jeton Supabase en utilisateur.
Les écrans de connexion/inscription vivent hors de ce service.
"""
from typing import Any, Dict

from .repository import get_user_from_access_token as _repo_get_user_from_token


def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise user issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, metadata, token}
    - id est une chaîne: c'est la valeur comparée à metadata.user_id des PaymentIntents
    """
    raw = _repo_get_user_from_token(access_token)
    uid = raw.get("id")
    return {
        "id": str(uid) if uid else None,
        "email": raw.get("email"),
        "metadata": raw.get("user_metadata") or {},
        "token": access_token,
    }
