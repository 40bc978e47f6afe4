import bleach
from rest_framework import serializers

from incidents import reference
from incidents.models import IncidentReport


class ReportSubmitSerializer(serializers.Serializer):
    location = serializers.CharField(max_length=255, allow_blank=True)
    hospital = serializers.CharField(max_length=64, allow_blank=True)
    incidentType = serializers.ChoiceField(choices=reference.INCIDENT_TYPES)
    consciousnessState = serializers.ChoiceField(choices=reference.CONSCIOUSNESS_STATES)
    personsInjured = serializers.IntegerField(min_value=0, max_value=1000, required=False, allow_null=True)

    def validate_location(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Please select a location')
        return v

    def validate_hospital(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Please select a hospital')
        return v

    def to_internal_value(self, data):
        # an empty number input arrives as ''
        if hasattr(data, 'get') and data.get('personsInjured') == '':
            data = data.copy()
            data['personsInjured'] = None
        return super().to_internal_value(data)

    def validate(self, attrs):
        hospital = reference.find_hospital(attrs['location'], attrs['hospital'])
        if hospital is None:
            raise serializers.ValidationError(
                {'hospital': [f"Hospital is not available for location {attrs['location']}"]}
            )
        attrs['hospital'] = hospital
        return attrs


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=list(IncidentReport.TERMINAL_STATUSES))


def report_payload(report: IncidentReport) -> dict:
    return {
        'id': str(report.id),
        'createdAt': report.created_at.isoformat() if report.created_at else None,
        'submitterId': report.submitter_id,
        'location': report.location,
        'incidentType': report.incident_type,
        'personsInjured': report.persons_injured,
        'consciousnessState': report.consciousness_state,
        'hospitalId': report.hospital_id,
        'hospitalName': report.hospital_name,
        'status': report.status,
    }
