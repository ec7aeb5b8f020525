"""Record model: the single collection exposed by the service."""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from recordsync.infrastructure.database import Base


class Record(Base):
    """A named record.

    ``id`` is assigned by the store on insert and never reused, including
    on SQLite where plain INTEGER PRIMARY KEY would recycle the highest id.
    """

    __tablename__ = "records"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Record id={self.id} name={self.name!r}>"
