# models/immutability.py
"""
ORM-level immutability for append-only records.

Orders, order lines and certificate records are facts: once flushed they can
only be superseded by new records. Listeners fire before the UPDATE/DELETE
reaches the database and abort the flush.
"""
from sqlalchemy import event

from exceptions import ImmutableRecordError
from logging_config import get_logger
from .certificate import CertificateRecord
from .order import Order, OrderLine

logger = get_logger("models.immutability")

_PROTECTED = {
     Order: ("Order", "id"),
     OrderLine: ("OrderLine", "id"),
     CertificateRecord: ("CertificateRecord", "certificate_id"),
}


def _block(operation: str):
     def listener(mapper, connection, target):
          entity_type, id_attr = _PROTECTED[type(target)]
          entity_id = str(getattr(target, id_attr))
          logger.error(
               "immutability_violation_blocked",
               extra={"entity_type": entity_type, "entity_id": entity_id, "operation": operation},
          )
          raise ImmutableRecordError(entity_type, entity_id)
     return listener


for _model in _PROTECTED:
     event.listen(_model, "before_update", _block("UPDATE"))
     event.listen(_model, "before_delete", _block("DELETE"))
