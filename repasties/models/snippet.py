"""
Repasties — Snippet SQLAlchemy Model
=====================================

What:  ORM model representing the `snippets` table.
How:   Inherits from the shared DeclarativeBase; `bootstrap_schema` creates
       the table from this metadata when it is missing.
Who:   SnippetStore inserts and reads rows through the Core table
       (`Snippet.__table__`) on a per-operation connection.

Table Design:
    - id: UUID4 string generated by the store layer at insert time
    - created_at: integer epoch seconds, assigned by the server
    - formatted_body: highlighted markup computed once before the insert
    - Index on (lang, created_at): serves "latest snippets in a language"
"""

import uuid

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from repasties.database import Base


def generate_snippet_id() -> str:
    return str(uuid.uuid4())


class Snippet(Base):
    """
    One persisted paste.

    Lifecycle:
        Created by SnippetStore.create(); never updated or deleted.
    """

    __tablename__ = "snippets"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_snippet_id,
    )

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")

    body: Mapped[str] = mapped_column(Text, nullable=False)

    # Always lower-case; "text" means no highlighting
    lang: Mapped[str] = mapped_column(String(64), nullable=False, default="text")

    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    formatted_body: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_snippets_lang_created_at", "lang", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Snippet(id={self.id}, lang='{self.lang}', created_at={self.created_at})>"


snippets_table = Snippet.__table__
