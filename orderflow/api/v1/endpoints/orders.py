# api/v1/endpoints/orders.py
import json
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from ....config.database import get_db
from ....config.settings import settings
from ....core.dependencies import get_current_user
from ....core.exceptions import BadRequestError, ValidationError
from ....models.order import Order
from ....models.user import User
from ....schemas.common import envelope
from ....schemas.order import OrderResponse
from ....services.bulk_service import BulkOrderService
from ....services.notification_service import dispatch_side_effects
from ....services.order_service import Attachment, OrderService
from ....utils.date_utils import export_date_stamp
from ....utils.file_utils import XLSX_MIME_TYPE

router = APIRouter()


def serialize_order(order: Order) -> Dict[str, Any]:
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


def serialize_orders(orders: List[Order]) -> List[Dict[str, Any]]:
    return [serialize_order(order) for order in orders]


def is_multipart(request: Request) -> bool:
    return request.headers.get("content-type", "").startswith("multipart/form-data")


async def read_upload(upload: UploadFile) -> bytes:
    content = await upload.read()
    if len(content) > settings.MAX_FILE_SIZE:
        raise BadRequestError(
            f"File {upload.filename} exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)}MB limit",
            field="file",
        )
    return content


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError.from_messages(["Request body must be valid JSON"])


async def read_order_form(request: Request) -> Tuple[Dict[str, Any], Optional[Attachment]]:
    """Create payload from JSON, or from form fields plus an optional ``poFile``."""
    if not is_multipart(request):
        body = await read_json_body(request)
        if not isinstance(body, dict):
            raise ValidationError.from_messages(["Request body must be an object"])
        return body, None

    form = await request.form()
    data: Dict[str, Any] = {}
    attachment = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == "poFile" and value.filename:
                attachment = Attachment(value.filename, await read_upload(value))
            continue
        data[key] = value

    # products travel as a JSON string inside multipart forms
    if isinstance(data.get("products"), str):
        try:
            data["products"] = json.loads(data["products"])
        except ValueError:
            raise ValidationError.from_messages(["products: must be a JSON array"])
    return data, attachment


@router.get("/orders")
def list_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Orders visible to the requester, newest first"""
    orders = OrderService(db).list_orders(current_user)
    return envelope(serialize_orders(orders))


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create a sales order (JSON body or multipart form with a PO file)"""
    data, attachment = await read_order_form(request)
    order, effects = await run_in_threadpool(OrderService(db).create_order, current_user, data, attachment)
    dispatch_side_effects(background_tasks, effects)
    return envelope(serialize_order(order))


@router.put("/orders/{id}")
async def update_order(
    id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Partial update of an order's editable fields"""
    body = await read_json_body(request)
    order, effects = await run_in_threadpool(OrderService(db).update_order, current_user, id, body)
    dispatch_side_effects(background_tasks, effects)
    return envelope(serialize_order(order))


@router.delete("/orders/{id}")
def delete_order(
    id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    effects = OrderService(db).delete_order(current_user, id)
    dispatch_side_effects(background_tasks, effects)
    return envelope(message="Order deleted successfully")


@router.post("/bulk-orders", status_code=status.HTTP_201_CREATED)
async def bulk_import_orders(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Import many orders from a spreadsheet upload or a JSON array, all or nothing"""
    service = BulkOrderService(db)
    if is_multipart(request):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise BadRequestError("No file uploaded", field="file")
        content = await read_upload(upload)
        rows = await run_in_threadpool(service.read_upload, content, upload.filename)
    else:
        body = await read_json_body(request)
        if not isinstance(body, list):
            raise BadRequestError("Expected a JSON array of orders")
        rows = service.number_json_items(body)

    orders, effects = await run_in_threadpool(service.import_orders, current_user, rows)
    dispatch_side_effects(background_tasks, effects)
    return envelope({"count": len(orders), "orderIds": [order.order_id for order in orders]})


@router.get("/export")
def export_orders(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Download visible orders as an Excel workbook, one row per product"""
    content = BulkOrderService(db).export_orders(current_user)
    filename = f"orders_{export_date_stamp()}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MIME_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
