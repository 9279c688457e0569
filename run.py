#!/usr/bin/env python3
"""Run script for teamtasks."""

import logging
import os

import uvicorn
from dotenv import load_dotenv

from teamtasks.database.database import init_db

load_dotenv()

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    init_db()
    uvicorn.run(
        "teamtasks.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("DEBUG", "False").lower() == "true",
    )
