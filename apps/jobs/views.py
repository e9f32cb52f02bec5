from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.response import Response

from core.utils import ENVELOPE_RESPONSES, OperationView, envelope, parse
from . import applications, services
from .serializers import (
    AssignTaskerSerializer, JobApplicationSerializer, JobApplySerializer, JobSerializer,
    JobUpdateSerializer, JobWriteSerializer
)


class JobCreateView(OperationView):

    @swagger_auto_schema(
        operation_description="Post a new job. It waits in under_review until an administrator approves it.",
        request_body=JobWriteSerializer,
        responses={201: envelope('Created job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request):
        return self.run(
            lambda: JobSerializer(services.create_job(request.user, request.data)).data,
            success_status=status.HTTP_201_CREATED,
        )


class JobDetailView(OperationView):

    @swagger_auto_schema(
        operation_description="Retrieve a job.",
        responses={200: JobSerializer, 401: 'Unauthorized', 404: 'Not Found'}
    )
    def get(self, request, pk):
        return Response(JobSerializer(services.get_job(pk)).data)

    @swagger_auto_schema(
        operation_description="Edit a job while it is still open and unassigned (job owner only).",
        request_body=JobUpdateSerializer,
        responses={200: envelope('Updated job'), **ENVELOPE_RESPONSES}
    )
    def patch(self, request, pk):
        return self.run(lambda: JobSerializer(services.update_job(request.user, pk, request.data)).data)

    @swagger_auto_schema(
        operation_description="Delete a job and its applications while it is still open and unassigned.",
        responses={200: envelope('Deleted'), **ENVELOPE_RESPONSES}
    )
    def delete(self, request, pk):
        return self.run(lambda: services.delete_job(request.user, pk))


class JobApproveView(OperationView):

    @swagger_auto_schema(
        operation_description="Approve a job under review so it opens for applications (administrators only).",
        responses={200: envelope('Approved job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobSerializer(services.approve_job(request.user, pk)).data)


class JobApplyView(OperationView):

    @swagger_auto_schema(
        operation_description="Apply to an open job with a proposed price (taskers only).",
        request_body=JobApplySerializer,
        responses={201: envelope('Created application'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(JobApplySerializer, request.data)
            application = applications.apply_to_job(
                request.user,
                pk,
                data['proposed_price'],
                message=data.get('message'),
                estimated_duration=data.get('estimated_duration'),
            )
            return JobApplicationSerializer(application).data
        return self.run(operation, success_status=status.HTTP_201_CREATED)


class JobWithdrawView(OperationView):

    @swagger_auto_schema(
        operation_description="Withdraw your pending application to a job.",
        responses={200: envelope('Withdrawn'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: applications.withdraw_application(request.user, pk))


class JobAssignView(OperationView):

    @swagger_auto_schema(
        operation_description="Assign a tasker directly, without an application (job owner only).",
        request_body=AssignTaskerSerializer,
        responses={200: envelope('Assigned job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        def operation():
            data = parse(AssignTaskerSerializer, request.data)
            return JobSerializer(services.assign_tasker_direct(request.user, pk, data['tasker_id'])).data
        return self.run(operation)


class JobStartView(OperationView):

    @swagger_auto_schema(
        operation_description="Start an assigned job (assigned tasker only).",
        responses={200: envelope('Started job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobSerializer(services.start_job(request.user, pk)).data)


class JobCompleteView(OperationView):

    @swagger_auto_schema(
        operation_description="Mark a job in progress as completed (assigned tasker only).",
        responses={200: envelope('Completed job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobSerializer(services.complete_job(request.user, pk)).data)


class JobConfirmView(OperationView):

    @swagger_auto_schema(
        operation_description="Confirm a completed job (job owner only). Records the payment and deducts the "
                              "platform fee from the tasker's wallet. Confirming again returns already_settled.",
        responses={200: envelope('Settlement result'), 402: 'Insufficient funds', **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: services.confirm_job_completion(request.user, pk).as_dict())


class JobCancelView(OperationView):

    @swagger_auto_schema(
        operation_description="Cancel a job that has not been assigned yet (job owner only).",
        responses={200: envelope('Cancelled job'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobSerializer(services.cancel_job(request.user, pk)).data)


class JobApplicationsListView(OperationView):

    @swagger_auto_schema(
        operation_description="List the applications to one of your jobs, newest first.",
        responses={200: envelope('Applications, newest first'), **ENVELOPE_RESPONSES}
    )
    def get(self, request, pk):
        return self.run(
            lambda: JobApplicationSerializer(applications.get_job_applications(request.user, pk), many=True).data
        )


class ApplicationAcceptView(OperationView):

    @swagger_auto_schema(
        operation_description="Accept an application. The tasker is assigned at the proposed price and every "
                              "other pending application is rejected.",
        responses={200: envelope('Accepted application'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobApplicationSerializer(applications.accept_application(request.user, pk)).data)


class ApplicationRejectView(OperationView):

    @swagger_auto_schema(
        operation_description="Reject a pending application.",
        responses={200: envelope('Rejected application'), **ENVELOPE_RESPONSES}
    )
    def post(self, request, pk):
        return self.run(lambda: JobApplicationSerializer(applications.reject_application(request.user, pk)).data)
