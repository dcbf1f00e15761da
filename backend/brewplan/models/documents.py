from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Next number per (document_type, year).

    Allocation happens in document_service.next_document_number() with an
    atomic UPDATE ... SET next_number = next_number + 1.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", "year", name="uq_document_sequences_type_year"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<DocumentSequence {self.document_type} {self.year} next={self.next_number}>"
