from sqlalchemy import Column, DateTime, Integer, String, Text

from ..database import Base


class File(Base):
    """Metadata for a file; no binary content is stored."""

    __tablename__ = "files"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    nom = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String, nullable=False)
    taille = Column(Integer, nullable=False)
    chemin_fichier = Column(String, nullable=False)
    # Plain column: deleting the creator must not invalidate the file.
    cree_par_id = Column(Integer, index=True, nullable=False)
    date_creation = Column(DateTime, nullable=False)
    date_modification = Column(DateTime, nullable=False)
    vues = Column(Integer, default=0, nullable=False)
