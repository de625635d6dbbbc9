# doughmain/core/models.py
"""
DATABASE MODELS for DoughMain

Two tables back the whole service:
- users_table is the identity provider's record of each user
- documents is a hierarchical document store, one row per document

Everything the app tracks about a user (linked items, accounts,
transactions) lives in documents under `users/{uid}/...`, the same way a
hosted document database would lay it out.
"""

from sqlalchemy import (
    Column,
    String,
    Boolean,
    TIMESTAMP,
    JSON,
    Index,
    func,
)

from doughmain.core.database import Base


# =========================
# User (identity provider record)
# =========================
class User(Base):
    """
    Owned by the identity provider. Custom claims (e.g. {"admin": true})
    are copied into every id token issued for the user.
    """

    __tablename__ = "users_table"

    uid = Column(String(128), primary_key=True)

    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)  # bcrypt hash

    display_name = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)

    disabled = Column(Boolean, nullable=False, default=False)

    custom_claims = Column(JSON, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    last_sign_in_at = Column(TIMESTAMP(timezone=True), nullable=True)


# =========================
# Document (hierarchical document store)
# =========================
class Document(Base):
    """
    One document of the store, addressed by its full slash-separated path.

    Example paths:
        users/u1/plaid_items/item-123
        users/u1/accounts/acc-1
        users/u1/transactions/tx-9
        global_content/faq/items/Ab3...
        site_settings/global

    A path alternates collection and document segments, so
    collection_path is the path minus its last segment and doc_id is that
    last segment. Listing a collection is a lookup on collection_path.
    """

    __tablename__ = "documents"

    path = Column(String(1024), primary_key=True)

    collection_path = Column(String(1024), nullable=False)
    doc_id = Column(String(255), nullable=False)

    data = Column(JSON, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    __table_args__ = (Index("idx_documents_collection", "collection_path", "doc_id"),)
