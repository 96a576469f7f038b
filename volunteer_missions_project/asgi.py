import os

from channels.routing import ProtocolTypeRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'volunteer_missions_project.settings')

# Websocket routing for mission rooms lives with the realtime service; this
# process only publishes to the channel layer.
application = ProtocolTypeRouter({
    'http': get_asgi_application(),
})
