import logging
from movienight.main import app

# Setup basic logging to capture errors in Vercel Logs
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

logger.info("Movie Night API initialized (%s)", app.title)

# Vercel's Python runtime serves the exported ASGI `app`
