import os

from flask import Flask
from flask_cors import CORS
from flask_restful import Api
from .routes import init_routes
from .models import LiteScanManager


def create_app(db_path=None):
    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend communication
    api = Api(app)

    app.config['LITESCAN_DB'] = db_path or os.environ.get('LITESCAN_DB', 'database.db')

    # Initialize Routes
    init_routes(api)

    # The database is opened on the first request
    app.extensions['litescan'] = LiteScanManager(app.config['LITESCAN_DB'])

    return app
