import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from authgate.core.security import hash_password


class InMemoryDB:
    def __init__(self, seed_users: bool = True):
        # emailid -> { "id": int, "emailid": str, "username": str, "password_hash": str }
        self.users: Dict[str, dict] = {}

        # ssstid -> { "qr_code_id": int, "ssstid": str, "mobilenumber": Optional[str], "qr_code_data": str, "created_at": datetime }
        self.qr_references: Dict[str, dict] = {}

        self._next_user_id = 1
        self._next_qr_id = 1
        self._lock = threading.Lock()

        if seed_users:
            self.add_user("admin@example.com", "admin", "password123")
            self.add_user("user@example.com", "user", "user123")

    def add_user(self, emailid: str, username: str, password: str) -> dict:
        user = {
            "emailid": emailid,
            "username": username or "User",
            "password_hash": hash_password(password),
        }
        with self._lock:
            if emailid in self.users:
                raise ValueError(f"User {emailid} already exists")
            user["id"] = self._next_user_id
            self._next_user_id += 1
            self.users[emailid] = user
        return user

    def find_user(self, emailid: str) -> Optional[dict]:
        with self._lock:
            return self.users.get(emailid)

    def insert_qr_reference(self, ssstid: str, mobilenumber: Optional[str], qr_code_data: str) -> Optional[dict]:
        """Returns the stored record, or None if the SSSTID is already taken."""
        with self._lock:
            if ssstid in self.qr_references:
                return None
            record = {
                "qr_code_id": self._next_qr_id,
                "ssstid": ssstid,
                "mobilenumber": mobilenumber,
                "qr_code_data": qr_code_data,
                "created_at": datetime.now(timezone.utc),
            }
            self._next_qr_id += 1
            self.qr_references[ssstid] = record
            return dict(record)

    def get_qr_reference(self, ssstid: str) -> Optional[dict]:
        with self._lock:
            record = self.qr_references.get(ssstid)
            return dict(record) if record else None

    def delete_qr_reference(self, ssstid: str) -> bool:
        with self._lock:
            return self.qr_references.pop(ssstid, None) is not None
