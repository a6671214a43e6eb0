"""Routes liées au profil de naissance.

Objectif du module
------------------
- Enregistrer (upsert) et relire le profil de naissance d'un utilisateur.
"""

from fastapi import APIRouter, HTTPException

from backend.api.schemas import ProfileRequest, ProfileResponse
from backend.core.constants import HTTP_STATUS_NOT_FOUND
from backend.core.container import container
from backend.domain.entities import BirthProfile

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _response(user_id: str, profile: BirthProfile) -> ProfileResponse:
    return ProfileResponse(
        user_id=user_id,
        birthday=profile.birth_instant,
        latitude=profile.latitude,
        longitude=profile.longitude,
        updated_at=profile.updated_at,
    )


@router.put("/{user_id}", response_model=ProfileResponse)
def save_profile(user_id: str, payload: ProfileRequest):
    """Crée ou remplace le profil de naissance de l'utilisateur."""
    profile = BirthProfile(
        birth_instant=payload.birthday,
        latitude=payload.latitude,
        longitude=payload.longitude,
    )
    return _response(user_id, container.panel.save_profile(user_id, profile))


@router.get("/{user_id}", response_model=ProfileResponse)
def get_profile(user_id: str):
    """Retourne le profil de naissance, sinon 404."""
    profile = container.panel.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=HTTP_STATUS_NOT_FOUND, detail="Profile not found")
    return _response(user_id, profile)
