"""Moderation repository - guarded status updates for moderated documents"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User


class ModerationRepository:
    """Repository for admin-gated state changes"""

    @staticmethod
    def compare_and_set(db: Session, model, record_id: str, field: str, expected, values: dict) -> bool:
        """
        UPDATE ... WHERE id = :id AND field IN (:expected)

        Returns False when another request moved the record first.
        """
        column = getattr(model, field)
        expected_values = expected if isinstance(expected, (list, tuple, set)) else [expected]
        updated = (
            db.query(model)
            .filter(model.id == record_id, column.in_(list(expected_values)))
            .update(values, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def list_users(
        db: Session,
        request_status: Optional[str] = None,
        is_service_provider: Optional[bool] = None,
    ) -> list[User]:
        query = db.query(User)
        if request_status:
            query = query.filter(User.request_status == request_status)
        if is_service_provider is not None:
            query = query.filter(User.is_service_provider == is_service_provider)
        return query.order_by(User.created_at.desc()).all()

    @staticmethod
    def delete_user(db: Session, user: User) -> None:
        db.delete(user)
