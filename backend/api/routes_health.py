"""
Endpoint de santé pour vérifier la disponibilité de l'API et du backend.

Expose `/health` pour signaler l'état général de l'application, du stockage et du LLM.
"""


from fastapi import APIRouter

from backend.core.container import container

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Vérifie la disponibilité de l'API, le backend de stockage et la clé LLM."""
    return {
        "status": "ok",
        "storage": getattr(container, "storage_backend", "unknown"),
        "llm_configured": container.llm.configured,
    }
