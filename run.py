"""Local development entry point.

Usage:
    python run.py

Loads .env, builds the app, and serves on port 8080. Forward Stripe
webhooks during development with:
    stripe listen --forward-to localhost:8080/webhook/stripe
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from donations import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=8080)
