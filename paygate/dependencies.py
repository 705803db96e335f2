from fastapi import Request

from paygate.config import Settings
from paygate.razorpay_service import RazorpayGateway


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_gateway(request: Request) -> RazorpayGateway:
    return request.app.state.gateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
