from riderops.db.connection import Base, Database

__all__ = ['Base', 'Database']
