"""
Main application entry point
"""

import os
import sys
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from kmmedia import create_app
from kmmedia.models import db
from kmmedia.utils import log_info, log_error


def main():
    """Main application entry point"""
    print("=" * 50)
    print("Starting KM Media Training Institute API")
    print("=" * 50)

    # Create the application
    app = create_app()

    # Test database connection
    with app.app_context():
        try:
            db.session.execute(text('SELECT 1'))
            log_info("Database connection available")
        except SQLAlchemyError as e:
            log_error("Database connection error", e)
            print(f"Database connection error: {e}")
            return False

    # Run the application
    port = int(os.environ.get('PORT', 5000))
    print(f"Starting server on http://localhost:{port}")
    print(f"Debug mode: {'ON' if app.debug else 'OFF'}")

    app.run(host='0.0.0.0', port=port, debug=app.debug)
    return True


if __name__ == '__main__':
    success = main()
    if not success:
        sys.exit(1)
