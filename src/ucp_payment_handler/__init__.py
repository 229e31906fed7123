"""UCP payment handler: checkout-bound, single-use payment tokenization."""

from ucp_payment_handler.handler import PaymentHandler, create_handler

__version__ = "0.1.0"

__all__ = ["PaymentHandler", "create_handler"]
