# Celery app ko Django start hote hi load karo taaki @shared_task isse bind ho
from .celery import app as celery_app

__all__ = ("celery_app",)
