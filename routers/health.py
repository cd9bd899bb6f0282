# routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import check_connection, get_session
from dependencies import get_adapter, get_registry
from exceptions import MarketError
from logging_config import get_logger

logger = get_logger("routers.health")

router = APIRouter(prefix="/api", tags=["health"])


def _probe(name: str, ping) -> str:
     try:
          ping()
          return "ok"
     except MarketError as e:
          logger.warning("health_probe_failed", extra={"dependency": name, "error_code": e.code})
          return "unavailable"


@router.get("/health", summary="Service health")
def health(
     db: Session = Depends(get_session),
     registry=Depends(get_registry),
     adapter=Depends(get_adapter),
):
     """Reports the database, the registry and (in HTTP mode) the settlement adapter."""
     database = "ok" if check_connection(db.get_bind()) else "unavailable"
     registry_status = _probe("registry", registry.ping)
     adapter_status = _probe("adapter", adapter.ping) if adapter is not None else "not_configured"
     return {
          "ok": database == "ok" and registry_status == "ok" and adapter_status != "unavailable",
          "database": database,
          "registry": registry_status,
          "adapter": adapter_status,
     }
