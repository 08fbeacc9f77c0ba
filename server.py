"""Friday orchestrator server entry point."""

import os

import uvicorn
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

if __name__ == "__main__":
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", 8000))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    print(f"Starting Friday orchestrator on {host}:{port}")
    uvicorn.run("friday.main:create_app", host=host, port=port, reload=debug, factory=True)
