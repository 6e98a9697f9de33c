"""Registration endpoints consumed by the registration workflow and overview"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from party_registration.models.database import get_registration_store
from party_registration.models.registration import (
    RegistrationCreate,
    RegistrationReplace,
)
from party_registration.services.aggregator import summarize
from party_registration.services.registration_store import RegistrationStore

router = APIRouter(prefix="/api", tags=["Registrations"])

# Handlers are plain functions so FastAPI runs them on its threadpool; the
# store's lock is what serializes their writes.


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: RegistrationCreate,
    store: RegistrationStore = Depends(get_registration_store),
):
    """Create a registration after the payment step"""
    registration = store.create(request.model_dump(by_alias=True, exclude_none=True))
    return {
        "success": True,
        "message": "Registration successful! See you at the party!",
        "registration": registration.summary(),
    }


@router.get("/users")
def list_registrations(store: RegistrationStore = Depends(get_registration_store)):
    """All registrations plus couple/adult/kid totals"""
    registrations = store.list()
    return {
        "success": True,
        **summarize(registrations).to_json(),
        "registrations": [registration.to_json() for registration in registrations],
    }


@router.get("/users/{registration_id}")
def get_registration(
    registration_id: str,
    store: RegistrationStore = Depends(get_registration_store),
):
    registration = store.get(registration_id)
    return {"success": True, "registration": registration.to_json()}


@router.put("/users/{registration_id}")
def replace_registration(
    registration_id: str,
    request: RegistrationReplace,
    store: RegistrationStore = Depends(get_registration_store),
):
    """Update the known registration fields that were supplied"""
    registration = store.update(registration_id, request.changes())
    return {
        "success": True,
        "message": "Registration updated successfully",
        "registration": registration.to_json(),
    }


@router.patch("/users/{registration_id}")
def patch_registration(
    registration_id: str,
    updates: Dict[str, Any] = Body(...),
    store: RegistrationStore = Depends(get_registration_store),
):
    """Merge arbitrary fields into a registration (id and createdAt are kept)"""
    registration = store.update(registration_id, updates)
    return {
        "success": True,
        "message": "Registration updated successfully",
        "registration": registration.to_json(),
    }


@router.delete("/users/{registration_id}")
def delete_registration(
    registration_id: str,
    store: RegistrationStore = Depends(get_registration_store),
):
    registration = store.delete(registration_id)
    return {
        "success": True,
        "message": "Registration deleted successfully",
        "registration": registration.to_json(),
    }
