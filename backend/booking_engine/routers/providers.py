# backend/booking_engine/routers/providers.py
# Read-only catalogue: providers and the services each one offers

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import NotFoundError
from ..models.generated import Providers as DBProviders
from ..schemas.providers import ProviderRead, ProviderServiceRead

router = APIRouter(prefix="/providers", tags=["providers"])


# ---------------------------------------------------------------------
# Base reads
# ---------------------------------------------------------------------

@router.get("", response_model=list[ProviderRead])
def list_providers(db: Session = Depends(get_db)):
    return (
        db.query(DBProviders)
        .filter(DBProviders.is_active == 1)
        .order_by(DBProviders.display_name)
        .all()
    )


@router.get("/{id}", response_model=ProviderRead)
def get_provider(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBProviders, id)
    if not obj:
        raise NotFoundError("Provider not found", details={"providerId": id})
    return obj


# ---------------------------------------------------------------------
# Domain: Provider → Services
# ---------------------------------------------------------------------

@router.get("/{id}/services", response_model=list[ProviderServiceRead])
def list_provider_services(id: int, db: Session = Depends(get_db)):
    if not db.get(DBProviders, id):
        raise NotFoundError("Provider not found", details={"providerId": id})

    result = db.execute(
        text(
            """
            SELECT
                s.id AS service_id,
                s.name,
                s.category,
                s.description,
                COALESCE(ps.duration_minutes, s.duration_minutes) AS duration_minutes,
                ps.price_cents
            FROM provider_services ps
            JOIN services s ON s.id = ps.service_id
            WHERE ps.provider_id = :pid
              AND ps.is_active = 1
            ORDER BY s.category, s.name
            """
        ),
        {"pid": id},
    )
    return [ProviderServiceRead.model_validate(dict(row)) for row in result.mappings().all()]
