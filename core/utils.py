import logging

from drf_yasg import openapi
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import AuthenticationError, MarketplaceError, ValidationError

logger = logging.getLogger(__name__)


def require_principal(principal):
    """Return the authenticated caller or raise AuthenticationError."""
    if principal is None or not getattr(principal, 'is_authenticated', False):
        raise AuthenticationError()
    return principal


def format_validation_errors(errors):
    """Flatten serializer errors into a single readable message."""
    messages = []
    for field, field_errors in errors.items():
        if not isinstance(field_errors, (list, tuple)):
            field_errors = [field_errors]
        for error in field_errors:
            if field == 'non_field_errors':
                messages.append(str(error))
            else:
                messages.append(f"{field}: {error}")
    return '; '.join(messages)


ENVELOPE_RESPONSES = {
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    409: 'Conflict',
}


def envelope(description):
    return openapi.Response(
        description=description,
        schema=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            properties={
                'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                'data': openapi.Schema(type=openapi.TYPE_OBJECT),
                'error': openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'code': openapi.Schema(type=openapi.TYPE_STRING),
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                ),
            }
        )
    )


def parse(serializer_class, data):
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise ValidationError(format_validation_errors(serializer.errors))
    return serializer.validated_data


class OperationView(APIView):
    """
    Base view for operations answered with an envelope.

    Domain errors never escape as exceptions: they are answered with
    {"success": false, "error": {"code", "message"}} and the matching status.
    Authentication is still enforced by DRF before the handler runs.
    """
    permission_classes = [IsAuthenticated]

    def run(self, operation, success_status=status.HTTP_200_OK):
        try:
            data = operation()
        except MarketplaceError as e:
            if e.status_code >= 500:
                logger.error(f"{self.__class__.__name__} failed: {e.code} {e.message}")
            else:
                logger.info(f"{self.__class__.__name__} refused: {e.code} {e.message}")
            return Response({'success': False, 'error': e.as_dict()}, status=e.status_code)
        return Response({'success': True, 'data': data}, status=success_status)
