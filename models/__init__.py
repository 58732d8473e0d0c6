"""
Persistence layer. `storage` is the process-wide DBStorage; the app factory
configures its engine from DATABASE_URL and creates the tables.
"""
from models.db_storage import DBStorage

storage = DBStorage()
