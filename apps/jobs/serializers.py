from rest_framework import serializers

from apps.users.models import User
from .models import Job, JobApplication


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name']
        ref_name = 'JobsUserSummary'


class JobWriteSerializer(serializers.ModelSerializer):
    """Validates the fields a customer supplies when posting a job."""

    class Meta:
        model = Job
        fields = ['title', 'description', 'requirements', 'customer_budget', 'currency', 'max_applications']
        extra_kwargs = {
            'title': {'max_length': 200},
            'requirements': {'required': False},
            'currency': {'required': False},
            'max_applications': {'required': False},
        }

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError("Title cannot be blank.")
        return value.strip()

    def validate_customer_budget(self, value):
        if value <= 0:
            raise serializers.ValidationError("Budget must be greater than zero.")
        return value

    def validate_max_applications(self, value):
        if value is not None and value < 1:
            raise serializers.ValidationError("Must allow at least one application.")
        return value


class JobUpdateSerializer(JobWriteSerializer):
    """Fields a customer may still change while the job is open."""

    class Meta(JobWriteSerializer.Meta):
        fields = ['title', 'description', 'requirements', 'customer_budget']


class JobSerializer(serializers.ModelSerializer):
    customer = UserSummarySerializer(read_only=True)
    assigned_tasker = UserSummarySerializer(read_only=True)

    class Meta:
        model = Job
        fields = [
            'id', 'title', 'description', 'requirements', 'status', 'customer', 'assigned_tasker',
            'customer_budget', 'final_price', 'currency', 'max_applications', 'current_applications',
            'started_at', 'completed_at', 'customer_confirmed_at', 'cancelled_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class JobApplicationSerializer(serializers.ModelSerializer):
    tasker = UserSummarySerializer(read_only=True)

    class Meta:
        model = JobApplication
        fields = [
            'id', 'job', 'tasker', 'proposed_price', 'estimated_duration', 'message', 'status',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class JobApplySerializer(serializers.Serializer):
    proposed_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    estimated_duration = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class AssignTaskerSerializer(serializers.Serializer):
    tasker_id = serializers.IntegerField()
