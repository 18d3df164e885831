# scripts/ping_mongo.py
import os
from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi
from dotenv import load_dotenv

load_dotenv()  # reads .env in project root
uri = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
db_name = os.getenv("MONGODB_DB", "expense_tracker")
print("Using URI:", uri[:40] + "...")  # don't dump whole secret to console

client = MongoClient(uri, server_api=ServerApi("1"), serverSelectionTimeoutMS=5000)
try:
    client.admin.command("ping")
    counts = {name: client[db_name][name].estimated_document_count() for name in ("users", "expenses", "transactions")}
    print(f"✅ Connected to {db_name}: {counts}")
except Exception as e:
    print("❌ Mongo ping failed:", repr(e))
    raise
finally:
    client.close()
