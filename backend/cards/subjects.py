import uuid
from dataclasses import dataclass

from core.exceptions import ValidationError
from staff.models import Staff
from students.models import Student

SUBJECT_MODELS = {
    'student': (Student, 'student_uuid', 'Student'),
    'staff': (Staff, 'staff_uuid', 'Staff member'),
}


@dataclass(frozen=True)
class SubjectRef:
    """A student or staff member a card is (or would be) issued to."""
    subject_type: str
    subject_id: object

    @classmethod
    def student(cls, student_uuid):
        return cls('student', student_uuid)

    @classmethod
    def staff(cls, staff_uuid):
        return cls('staff', staff_uuid)

    @classmethod
    def for_subject(cls, subject):
        return cls(subject.subject_type, subject.subject_id)

    @property
    def id_field(self):
        return f"{self.subject_type}_uuid"

    @property
    def key(self):
        """Uniqueness key; falls back to the raw id when it is not a UUID."""
        try:
            subject_id = str(uuid.UUID(str(self.subject_id)))
        except (TypeError, ValueError, AttributeError):
            subject_id = str(self.subject_id).strip()
        return f"{self.subject_type}:{subject_id}"

    def as_dict(self):
        return {'subject_type': self.subject_type, 'subject_id': str(self.subject_id)}

    def resolve(self):
        """
        Return the active Student/Staff this ref points at.
        Raises ValidationError for an unknown type, a malformed id, or a
        subject that does not exist or is inactive.
        """
        if self.subject_type not in SUBJECT_MODELS:
            raise ValidationError(
                f"Unknown subject type '{self.subject_type}'. Use 'student' or 'staff'.",
                field='subject_type'
            )
        model, id_field, label = SUBJECT_MODELS[self.subject_type]

        try:
            subject_uuid = uuid.UUID(str(self.subject_id))
        except (TypeError, ValueError, AttributeError):
            raise ValidationError(f"'{self.subject_id}' is not a valid UUID.", field=id_field)

        try:
            return model.objects.active().get(**{id_field: subject_uuid})
        except model.DoesNotExist:
            raise ValidationError(f"{label} not found or inactive.", field=id_field)


def subject_snapshot(subject):
    """Minimal public details shown by the verification endpoint."""
    if isinstance(subject, Student):
        return {
            'registration_number': subject.registration_number,
            'full_name': subject.full_name,
            'department': subject.department,
            'status': subject.student_status,
        }
    return {
        'staff_number': subject.staff_number,
        'full_name': subject.full_name,
        'department': subject.department,
        'position': subject.position,
        'employment_status': subject.employment_status,
    }
