import sys
import uvicorn
from dotenv import load_dotenv

if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

if __name__ == "__main__":
    load_dotenv()

    from chatrelay.config import ServerConfig

    config = ServerConfig.from_env()
    uvicorn.run(
        "chatrelay.server:app",
        host=config.host,
        port=config.port,
        reload="--reload" in sys.argv,
        reload_dirs=["chatrelay"],
    )
