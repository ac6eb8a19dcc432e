"""
Local development server for the weather proxy.
Run from the repository root: python -m weather_proxy.local_dev
"""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

root_dir = Path(__file__).resolve().parent.parent


def main():
    env_file = root_dir / ".env"
    if env_file.exists():
        load_dotenv(env_file)
        print(f"Loaded environment variables from {env_file}")
    else:
        print("No .env file found. Using environment variables from the shell.")

    port = int(os.getenv("PORT", "3000"))
    print("Starting Weather Proxy...")
    print(f"Health: http://localhost:{port}/api/health")
    print(f"API Documentation: http://localhost:{port}/docs")

    # Imported by path so .env values are in place before config is read
    uvicorn.run(
        "weather_proxy.app:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
