from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core import exceptions as errors
from core.utils import OperationView
from .models import Notification
from .serializers import NotificationSerializer


class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List the authenticated user's notifications, newest first.",
        manual_parameters=[
            openapi.Parameter('unread', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN, required=False),
        ],
        responses={200: NotificationSerializer(many=True), 401: 'Unauthorized'}
    )
    def get(self, request):
        queryset = Notification.objects.filter(user=request.user)
        if request.query_params.get('unread') in ('1', 'true', 'True'):
            queryset = queryset.filter(is_read=False)
        return Response(NotificationSerializer(queryset, many=True).data)


class NotificationReadView(OperationView):

    @swagger_auto_schema(
        operation_description="Mark one of your notifications as read.",
        responses={200: 'Marked as read', 404: 'Not Found'}
    )
    def post(self, request, pk):
        def operation():
            notification = Notification.objects.filter(pk=pk, user=request.user).first()
            if notification is None:
                raise errors.NotFoundError('Notification not found')
            notification.mark_as_read()
            return NotificationSerializer(notification).data
        return self.run(operation)
