"""
ProjectHub
SQLAlchemy extension shared by every model module.

Usage:
    from projecthub.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
