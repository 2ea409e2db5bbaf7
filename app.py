"""Application entry point for the dog walking schedule service."""

import logging

from dogwalking.webapp import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
