"""
Appliers for users and sessions
"""

from typing import Any, Dict
from migration.appliers.base import EntityApplier, reference_key
from models.base import EntityType
from models.identity import User, Session
from schemas.coercion import parse_datetime
from schemas.snapshot import UserRecord, SessionRecord


class UserApplier(EntityApplier):
    """Users, upserted by email. Referenced by sessions and journal entries."""

    entity = EntityType.USUARIOS
    prefix = "USR"
    model = User
    conflict_columns = ("email",)
    is_parent = True

    def build_values(self, record: UserRecord, key: str) -> Dict[str, Any]:
        if not record.email:
            raise self.invalid("missing email", "email")

        return {
            "source_key": key,
            "email": record.email,
            "nombre": record.nombre,
            "rol": record.rol,
            "password_hash": record.password_hash,
            "creado_en": parse_datetime(record.creado_en),
        }

    def aliases(self, record, values):
        return (values["email"],)


class SessionApplier(EntityApplier):
    """Sessions, upserted by token. The owning user is required."""

    entity = EntityType.SESIONES
    prefix = "SES"
    model = Session
    conflict_columns = ("token",)

    def build_values(self, record: SessionRecord, key: str) -> Dict[str, Any]:
        if not record.token:
            raise self.invalid("missing token", "token")

        return {
            "source_key": key,
            "token": record.token,
            "usuario_id": self.resolve_parent(EntityType.USUARIOS, reference_key(record.user_id), required=True),
            "creado_en": parse_datetime(record.creado_en),
            "expira_en": parse_datetime(record.expira_en),
        }
