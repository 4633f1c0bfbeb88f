# module travelease.app
from travelease.app_setup.factory import create_app

# App globale
app = create_app()
