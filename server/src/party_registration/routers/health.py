from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from party_registration.config import config
from party_registration.models.database import get_registration_store
from party_registration.services.errors import PersistenceError
from party_registration.services.registration_store import RegistrationStore

health = APIRouter(prefix="/api", tags=["Health"])


@health.get("/health")
async def health_check():
    """Basic health check endpoint"""
    return {"status": "OK", "message": "Server is running"}


@health.get("/health/detailed")
def detailed_health_check(store: RegistrationStore = Depends(get_registration_store)):
    """Health check that also reads the registration file"""
    health_status = {
        "status": "OK",
        "service": "party-registration",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": config["environment"],
        "checks": {},
    }

    try:
        count = len(store.list())
        health_status["checks"]["storage"] = f"healthy ({count} registrations)"
    except PersistenceError as e:
        health_status["checks"]["storage"] = f"unhealthy: {e}"
        health_status["status"] = "UNHEALTHY"
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
