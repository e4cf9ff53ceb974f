"""Item and section catalog tables and their junction."""

from sqlalchemy import Integer, String, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, NamedMixin


class Item(NamedMixin, Base):
    """A named grocery product. Names are unique and case-sensitive."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Section(NamedMixin, Base):
    """A grocery-store category such as "produce"."""

    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class ItemSection(Base):
    """Junction table linking items to sections.

    Many-to-many at the schema level; the stores keep at most one row per item.
    """

    __tablename__ = "items_sections"

    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), primary_key=True
    )
    section_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sections.id"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<ItemSection(item_id={self.item_id}, section_id={self.section_id})>"
