from .connection import Base, Database, get_database, get_db

from .models import (
    TemplateDB, SentEmailDB, EmailOpenDB, EmailClickDB, SentEmailStatus
)

__all__ = [
    'Base', 'Database', 'get_database', 'get_db',
    'TemplateDB', 'SentEmailDB', 'EmailOpenDB', 'EmailClickDB', 'SentEmailStatus',
]
