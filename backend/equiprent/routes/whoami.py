# equiprent/routes/whoami.py
from fastapi import APIRouter, Depends
from equiprent.deps import AUTH_DEP, get_store
from equiprent.models import WhoAmIOut

router = APIRouter(tags=["meta"])

@router.get("/whoami", response_model=WhoAmIOut)
def whoami(principal_id: str = Depends(AUTH_DEP), store=Depends(get_store)):
    """The calling principal and its current role (read fresh, never cached)."""
    return {"id": principal_id, "role": store.get_role(principal_id)}
