# Celery instance is defined in erp_project/celery.py
# celery_app becomes the singleton task queue app for the whole project
from .celery import celery_app

# 'from erp_project import *', only exports celery_app
__all__ = ("celery_app",)
