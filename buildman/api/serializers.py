"""
Buildman API Serializers.

Input validation for raw orders and procurement updates, and output for
persisted tasks. Host projects wire them into their own views.
"""

from rest_framework import serializers

from buildman.models import ProductionTask
from buildman.services.procurement import MILESTONE_STAGES, PROCUREMENT_STATUSES


# ══════════════════════════════════════════════════════════════
# RAW ORDER INPUT
# ══════════════════════════════════════════════════════════════


class SinkConfigurationSerializer(serializers.Serializer):
    build_number = serializers.CharField()
    sink_model_id = serializers.CharField()
    width = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    length = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    legs_type_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    feet_type_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    pegboard = serializers.BooleanField(default=False)
    pegboard_type_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    pegboard_color_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    pegboard_size_part_number = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )
    drawers_and_compartments = serializers.ListField(
        child=serializers.CharField(), default=list
    )
    workflow_direction = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )


class BasinConfigurationSerializer(serializers.Serializer):
    build_number = serializers.CharField()
    # Unknown values pass: the task engine warns about them
    basin_type_id = serializers.CharField(allow_blank=True)
    basin_size_part_number = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )
    addon_ids = serializers.ListField(child=serializers.CharField(), default=list)


class FaucetConfigurationSerializer(serializers.Serializer):
    build_number = serializers.CharField()
    faucet_type_id = serializers.CharField()
    quantity = serializers.IntegerField(default=1, min_value=1)
    placement = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class SprayerConfigurationSerializer(serializers.Serializer):
    build_number = serializers.CharField()
    sprayer_type_id = serializers.CharField()
    quantity = serializers.IntegerField(default=1, min_value=1)
    location = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class SelectedAccessorySerializer(serializers.Serializer):
    build_number = serializers.CharField()
    accessory_id = serializers.CharField()
    quantity = serializers.IntegerField(default=1, min_value=1)


class OrderInputSerializer(serializers.Serializer):
    """
    Raw order as submitted by the configurator.

    Sub-configuration rows are keyed by build_number; a build may have any
    number of basin, faucet, sprayer and accessory rows.
    """

    order_id = serializers.CharField(max_length=64)
    po_number = serializers.CharField()
    customer_name = serializers.CharField()
    project_name = serializers.CharField(allow_blank=True, default="")
    sales_person = serializers.CharField(allow_blank=True, default="")
    want_date = serializers.DateField(required=False, allow_null=True)
    language = serializers.ChoiceField(choices=["EN", "FR", "SP"], default="EN")
    build_numbers = serializers.ListField(child=serializers.CharField(), min_length=1)

    sink_configurations = SinkConfigurationSerializer(many=True, default=list)
    basin_configurations = BasinConfigurationSerializer(many=True, default=list)
    faucet_configurations = FaucetConfigurationSerializer(many=True, default=list)
    sprayer_configurations = SprayerConfigurationSerializer(
        many=True, default=list
    )
    selected_accessories = SelectedAccessorySerializer(many=True, default=list)

    def validate_build_numbers(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError("Build numbers must be unique.")
        return value


# ══════════════════════════════════════════════════════════════
# PROCUREMENT
# ══════════════════════════════════════════════════════════════


class TrackedPartSerializer(serializers.Serializer):
    """
    One tracked procurement record.

    Keys are kept in document (camelCase) shape; only keys actually sent
    end up in validated_data, so the overlay keeps BOM-derived fields the
    record does not carry.
    """

    partNumber = serializers.CharField()
    status = serializers.ChoiceField(choices=PROCUREMENT_STATUSES, required=False)
    partName = serializers.CharField(required=False)
    quantity = serializers.IntegerField(required=False, min_value=0)
    category = serializers.CharField(required=False)
    assignee = serializers.CharField(required=False, allow_blank=True)
    supplier = serializers.CharField(required=False, allow_blank=True)
    sentAt = serializers.CharField(required=False, allow_null=True)
    receivedAt = serializers.CharField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class ProcurementUpdateSerializer(serializers.Serializer):
    outsourced_parts = TrackedPartSerializer(many=True, required=False)
    analysis_completed = serializers.BooleanField(required=False)
    missing_parts = serializers.ListField(child=serializers.JSONField(), required=False)
    milestone = serializers.ChoiceField(
        choices=list(MILESTONE_STAGES), required=False, allow_null=True
    )


# ══════════════════════════════════════════════════════════════
# TASKS
# ══════════════════════════════════════════════════════════════


class ProductionTaskSerializer(serializers.ModelSerializer):
    """Serializer for ProductionTask model."""

    class Meta:
        model = ProductionTask
        fields = [
            "id",
            "order_id",
            "build_number",
            "task_id",
            "kind",
            "category",
            "title",
            "description",
            "estimated_time",
            "position",
            "test_type",
            "expected_result",
            "unit",
            "min_value",
            "max_value",
            "basin_number",
            "completed",
            "completed_at",
            "completed_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "order_id",
            "build_number",
            "task_id",
            "kind",
            "created_at",
            "updated_at",
        ]
