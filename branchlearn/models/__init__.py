from branchlearn.models.user import Enrollment, Role, User
from branchlearn.models.catalog import Branch, EquipmentKit, Video
from branchlearn.models.document import Document, DocumentStatus, DocumentType
from branchlearn.models.payment import Payment, PaymentStatus
from branchlearn.models.vr_session import VrSession

__all__ = [
    "Branch",
    "Document",
    "DocumentStatus",
    "DocumentType",
    "Enrollment",
    "EquipmentKit",
    "Payment",
    "PaymentStatus",
    "Role",
    "User",
    "Video",
    "VrSession",
]
