# store/exceptions.py — erros de domínio (DRF) + handler que padroniza o corpo das respostas
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.db import OperationalError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Erro interno ao processar a requisição."


class ProductUnavailable(exceptions.APIException):
    """Algum produto do pedido não existe ou não está publicado."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Um ou mais produtos não estão disponíveis ou publicados."
    default_code = "product_unavailable"


class InsufficientStock(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "insufficient_stock"

    def __init__(self, product_label: str):
        self.product_label = product_label
        super().__init__(f"Estoque insuficiente para o produto: {product_label}")


class CancellationNotAllowed(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Apenas pedidos pendentes podem ser cancelados."
    default_code = "cancellation_not_allowed"


class TrackingCodeRequired(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Código de rastreamento é obrigatório para pedidos enviados."
    default_code = "tracking_code_required"


class ProductInUse(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Produto possui pedidos vinculados e não pode ser removido."
    default_code = "product_in_use"


class SelfDeletionNotAllowed(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Não é possível excluir o próprio usuário."
    default_code = "self_deletion_not_allowed"


class InvalidCredentials(exceptions.APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Credenciais inválidas."
    default_code = "invalid_credentials"


class StoreUnavailable(exceptions.APIException):
    """
    Timeout, lock ou conflito de serialização no banco.
    Nada foi gravado: o cliente pode tentar de novo.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Banco de dados indisponível no momento. Tente novamente."
    default_code = "store_unavailable"


def _code_of(exc: exceptions.APIException) -> str:
    codes = exc.get_codes()
    return codes if isinstance(codes, str) else exc.default_code


def api_exception_handler(exc, context):
    """
    Corpo padrão: {"detail": ..., "code": ...}
    Validação: {"detail": "Dados inválidos.", "code": "invalid", "errors": {campo: [...]}}
    Qualquer outra exceção vira 500 genérico (logado, sem detalhes internos).
    """
    if isinstance(exc, OperationalError):
        logger.warning("Falha operacional no banco: %s", exc)
        exc = StoreUnavailable()

    if isinstance(exc, exceptions.ValidationError):
        response = exception_handler(exc, context)
        response.data = {"detail": "Dados inválidos.", "code": "invalid", "errors": exc.detail}
        return response

    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is not None:
        response.data = {"detail": str(exc.detail), "code": _code_of(exc)}
        return response

    view = context.get("view")
    logger.exception("Erro inesperado em %s", type(view).__name__ if view else "?")
    return Response(
        {"detail": GENERIC_ERROR_MESSAGE, "code": "server_error"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
