import base64
import io
import logging
import re
from datetime import datetime, timezone

import qrcode

from authgate.db import InMemoryDB

logger = logging.getLogger(__name__)

SSSTID_PATTERN = re.compile(r"^SSST\d{6}$")
MOBILE_PATTERN = re.compile(r"^\+\d{12}$")


class DuplicateReferenceError(Exception):
    pass


class ReferenceNotFoundError(Exception):
    pass


def _iso(dt) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class QRService:
    def __init__(self, db: InMemoryDB):
        self.db = db

    @staticmethod
    def create_qr_image(data_str: str) -> str:
        """
        Creates a QR code image and returns it as a base64 string
        """
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(data_str)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        return base64.b64encode(buffered.getvalue()).decode()

    @staticmethod
    def validate_ssstid(ssstid: str) -> None:
        if not ssstid:
            raise ValueError("SSSTID is required")
        if not SSSTID_PATTERN.match(ssstid):
            raise ValueError("SSSTID must be in format SSST followed by 6 digits (e.g., SSST123456)")

    @staticmethod
    def build_content(ssstid: str, mobilenumber: str | None = None) -> str:
        if mobilenumber:
            return f"SSSTID:{ssstid}|MobileNumber:{mobilenumber}"
        return ssstid

    @staticmethod
    def to_public(record: dict) -> dict:
        return {
            "qr_code_id": record["qr_code_id"],
            "ssstid": record["ssstid"],
            "mobilenumber": record["mobilenumber"],
            "qr_code_data": record["qr_code_data"],
            "created_at": _iso(record["created_at"]),
        }

    def create_reference(self, ssstid: str, mobilenumber: str | None = None) -> dict:
        self.validate_ssstid(ssstid)
        if mobilenumber and not MOBILE_PATTERN.match(mobilenumber):
            raise ValueError("Mobile number must be in format +[12 digits] (e.g., +911234567890)")

        if self.db.get_qr_reference(ssstid) is not None:
            raise DuplicateReferenceError("QR code already exists for this SSSTID")

        data_url = "data:image/png;base64," + self.create_qr_image(self.build_content(ssstid, mobilenumber))
        record = self.db.insert_qr_reference(ssstid, mobilenumber, data_url)
        if record is None:
            # Lost a race with a concurrent insert of the same SSSTID
            raise DuplicateReferenceError("QR code already exists for this SSSTID")

        logger.info(f"QR code created: ssstid={ssstid}, qr_code_id={record['qr_code_id']}")
        return self.to_public(record)

    def get_reference(self, ssstid: str) -> dict:
        self.validate_ssstid(ssstid)
        record = self.db.get_qr_reference(ssstid)
        if record is None:
            raise ReferenceNotFoundError("QR code not found for the given SSSTID")
        return self.to_public(record)

    def delete_reference(self, ssstid: str) -> dict:
        self.validate_ssstid(ssstid)
        if not self.db.delete_qr_reference(ssstid):
            raise ReferenceNotFoundError("QR code not found for the given SSSTID")
        logger.info(f"QR code deleted: ssstid={ssstid}")
        return {"ssstid": ssstid, "deleted_at": _iso(datetime.now(timezone.utc))}
