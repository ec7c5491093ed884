# Celery instance is defined in books_project/celery.py
# Importing it here makes @shared_task bind to this app when Django starts
from .celery import celery_app

# 'from books_project import *', only exports celery_app
__all__ = ("celery_app",)
