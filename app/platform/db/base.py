from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import declarative_base
from uuid_extension import uuid7

Base = declarative_base()


class BaseModel(Base):
    """Common columns: time-ordered uuid7 string id plus created/updated timestamps."""
    __abstract__ = True

    id = Column(String, primary_key=True, default=lambda: str(uuid7()), index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"

# Models import this Base; app.platform.db.session.init_db imports the models before creating tables.
