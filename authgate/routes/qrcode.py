# QR code reference routes (create, fetch, delete), all behind the session gate.

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from authgate.dependencies.auth import get_qr_service, require_session
from authgate.routes.auth import CamelModel
from authgate.services.auth_service import AuthContext
from authgate.services.qr_service import DuplicateReferenceError, QRService, ReferenceNotFoundError

router = APIRouter(tags=["qrcode"])


class CreateQRReq(BaseModel):
    ssstid: str = ""
    mobilenumber: str | None = None


class QRData(CamelModel):
    qr_code_id: int
    ssstid: str
    mobilenumber: str | None = None
    qr_code_data: str
    created_at: str


class QRResp(CamelModel):
    success: bool
    message: str
    data: QRData


class QRDeletedData(CamelModel):
    ssstid: str
    deleted_at: str


class QRDeletedResp(CamelModel):
    success: bool
    message: str
    data: QRDeletedData


@router.post("/createqrcode", response_model=QRResp, status_code=201)
def create_qrcode(
    req: CreateQRReq,
    ctx: AuthContext = Depends(require_session),
    qr: QRService = Depends(get_qr_service),
):
    try:
        data = qr.create_reference(req.ssstid, req.mobilenumber)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateReferenceError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"success": True, "message": "QR code created and saved successfully", "data": data}


@router.get("/qrcode/{ssstid}", response_model=QRResp)
def get_qrcode(ssstid: str, ctx: AuthContext = Depends(require_session), qr: QRService = Depends(get_qr_service)):
    try:
        data = qr.get_reference(ssstid)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReferenceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "QR code retrieved successfully", "data": data}


@router.delete("/qrcode/{ssstid}", response_model=QRDeletedResp)
def delete_qrcode(ssstid: str, ctx: AuthContext = Depends(require_session), qr: QRService = Depends(get_qr_service)):
    try:
        data = qr.delete_reference(ssstid)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReferenceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True, "message": "QR code deleted successfully", "data": data}
