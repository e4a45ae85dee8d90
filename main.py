# main.py
import asyncio
import logging
import uvicorn
from luxemoon.app import create_app
from luxemoon.config import Config, setup_logging

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        # Initialize and start the API server
        server = uvicorn.Server(uvicorn.Config(
            create_app(),
            host=Config.HOST,
            port=Config.PORT,
            log_config=None
        ))
        logger.info("Starting order engine...")
        await server.serve()
    except Exception as e:
        logger.error(f"Error starting order engine: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())
