"""
Quick API smoke run against a live server.
Covers: register, login, me, create event, patch event, register for event,
list, delete.

    python testing/smoke_api.py            # BASE_URL defaults to localhost:3000
"""

import os
import uuid

import requests

BASE = os.getenv("BASE_URL", "http://localhost:3000")

username = f"user{uuid.uuid4().hex[:12]}"
password = "1234567890"

# 1) Register a user
r = requests.post(f"{BASE}/users/register", json={
    "username": username,
    "name": "Smoke Test",
    "password": password,
})
print("REGISTER:", r.status_code, r.json())

# 2) Registering again must fail
r = requests.post(f"{BASE}/users/register", json={
    "username": username,
    "name": "Smoke Test",
    "password": password,
})
print("REGISTER AGAIN (expect 400):", r.status_code, r.json())

# 3) Login with same credentials
r = requests.post(f"{BASE}/users/login", json={
    "username": username,
    "password": password,
})
print("LOGIN:", r.status_code, r.json())
token = r.json().get("token")
headers = {"Authorization": f"Bearer {token}"}

# 4) Wrong password
r = requests.post(f"{BASE}/users/login", json={"username": username, "password": "nope"})
print("LOGIN WRONG PASSWORD (expect 401):", r.status_code, r.json())

# 5) Who am I
r = requests.get(f"{BASE}/users/me", headers=headers)
print("ME:", r.status_code, r.json())

# 6) Create an event
r = requests.post(f"{BASE}/events", json={
    "name": f"Smoke event {username}",
    "description": "Simple test",
}, headers=headers)
print("CREATE EVENT:", r.status_code, r.json())
event_id = r.json().get("id")

# 7) Patch it
r = requests.patch(f"{BASE}/events/{event_id}", json={"description": "Updated"}, headers=headers)
print("PATCH EVENT:", r.status_code, r.json())

# 8) Sign up for it (no token needed)
r = requests.post(f"{BASE}/registrations", json={
    "name": "Guest",
    "comment": "See you there",
    "event": event_id,
})
print("REGISTER FOR EVENT:", r.status_code, r.json())

# 9) List all events
r = requests.get(f"{BASE}/events")
print("LIST EVENTS:", r.status_code, r.json())

# 10) Delete twice: 200 then 404
r = requests.delete(f"{BASE}/events/{event_id}", headers=headers)
print("DELETE EVENT:", r.status_code, r.json())
r = requests.delete(f"{BASE}/events/{event_id}", headers=headers)
print("DELETE EVENT AGAIN (expect 404):", r.status_code, r.json())
