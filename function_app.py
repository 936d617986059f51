# tabs preferred
import azure.functions as func
from app import app as flask_app

# every Flask route is served as an anonymous HTTP function (routePrefix "" in host.json)
app = func.WsgiFunctionApp(app=flask_app.wsgi_app, http_auth_level=func.AuthLevel.ANONYMOUS)
