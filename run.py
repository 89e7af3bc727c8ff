from app import create_app
from app.realtime import socketio
import os

app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", 5050))
    try:
        socketio.run(
            app,
            host="127.0.0.1",
            port=port,
            debug=False,
            use_reloader=False,
            log_output=True,
            allow_unsafe_werkzeug=True,
        )
    finally:
        app.extensions["db"].close()

# Local dev:
# docker compose --env-file .env.docker up -d
# alembic upgrade head
# python scripts/seed.py
# PORT=5050 python run.py
#
# Stripe webhooks to localhost:
# stripe listen --forward-to http://127.0.0.1:5050/api/stripe/webhook
