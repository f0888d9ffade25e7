import os

from dotenv import load_dotenv

load_dotenv()

AUDIT_GENESIS_HASH = os.getenv("AUDIT_GENESIS_HASH", "0000000000000000")
