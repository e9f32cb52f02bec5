from django.urls import path

from .views import (
    JobCreateView, JobDetailView, JobApproveView, JobApplyView, JobWithdrawView, JobAssignView,
    JobStartView, JobCompleteView, JobConfirmView, JobCancelView, JobApplicationsListView,
    ApplicationAcceptView, ApplicationRejectView
)

urlpatterns = [
    path('', JobCreateView.as_view(), name='job_create'),
    path('<int:pk>/', JobDetailView.as_view(), name='job_detail'),
    path('<int:pk>/approve/', JobApproveView.as_view(), name='job_approve'),
    path('<int:pk>/apply/', JobApplyView.as_view(), name='job_apply'),
    path('<int:pk>/withdraw/', JobWithdrawView.as_view(), name='job_withdraw'),
    path('<int:pk>/assign/', JobAssignView.as_view(), name='job_assign'),
    path('<int:pk>/start/', JobStartView.as_view(), name='job_start'),
    path('<int:pk>/complete/', JobCompleteView.as_view(), name='job_complete'),
    path('<int:pk>/confirm/', JobConfirmView.as_view(), name='job_confirm'),
    path('<int:pk>/cancel/', JobCancelView.as_view(), name='job_cancel'),
    path('<int:pk>/applications/', JobApplicationsListView.as_view(), name='job_applications'),
    path('applications/<int:pk>/accept/', ApplicationAcceptView.as_view(), name='application_accept'),
    path('applications/<int:pk>/reject/', ApplicationRejectView.as_view(), name='application_reject'),
]
