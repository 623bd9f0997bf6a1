import requests
import json
import sys
import time

BASE_URL = "http://localhost:8000/api"
POLL_INTERVAL = 3
MAX_ATTEMPTS = 100

def run_test():
    preferences = {
        "destination": "Rome",
        "dates": {"from": "2025-06-01", "to": "2025-06-03"},
        "numPeople": 2,
        "ageGroups": ["adults"],
        "interests": ["historical_sites", "local_cuisine"],
        "budget": {"currency": "EUR", "amount": 1500},
        "transport": ["walking", "train"],
        "foodPreferences": ["vegetarian"]
    }
    resp = requests.post(f"{BASE_URL}/submit", json=preferences)
    body = resp.json()
    if "error" in body:
        print("Submit error:", body["error"])
        sys.exit(1)

    if "itinerary" in body:
        print(json.dumps(body["itinerary"], indent=2))
        return

    session_id = body["sessionId"]
    print(f"Session: {session_id}")
    for attempt in range(1, MAX_ATTEMPTS + 1):
        result = requests.get(f"{BASE_URL}/result", params={"sessionId": session_id}).json()
        if result["status"] == "completed":
            print(json.dumps(result["itinerary"], indent=2))
            return
        if result["status"] != "pending":
            print("Error:", result.get("error"))
            sys.exit(1)
        print(f"Pending ({attempt}/{MAX_ATTEMPTS})...")
        time.sleep(POLL_INTERVAL)

    print("Error: the itinerary service did not respond in time")
    sys.exit(1)

if __name__ == "__main__":
    run_test()
