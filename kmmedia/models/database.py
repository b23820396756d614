"""
Database extension shared by all models
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
