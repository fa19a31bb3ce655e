from enum import Enum

class RequirementType(str, Enum):
    FUNCTIONAL = "Functional"
    NON_FUNCTIONAL = "Non-Functional"
    UI_UX = "UI/UX"
    CS = "CS"
    FS = "FS"
    PMP = "PMP"
    QNR = "QNR"
    SEC = "SEC"
    EPIC = "EPIC"
    STORY = "STORY"
    CON = "CON"
    BUS = "BUS"
    SYS = "SYS"
    BLK = "BLK"

class Priority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    OPTIONAL = "Optional"

class Status(str, Enum):
    DRAFT = "Draft"
    PROPOSED = "Proposed"
    APPROVED = "Approved"
    IMPLEMENTED = "Implemented"
    VERIFIED = "Verified"
    ARCHIVED = "Archived"

class VerificationMethod(str, Enum):
    TEST = "Test"
    INSPECTION = "Inspection"
    ANALYSIS = "Analysis"
    DEMONSTRATION = "Demonstration"
    NOT_APPLICABLE = "N/A"

class SubmissionIntent(str, Enum):
    CREATE = "create"
    UPDATE = "update"

class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    ENCODE = "ENCODE"
    DECODE = "DECODE"
    VCS = "VCS"
    REVIEW_API = "REVIEW_API"
    REVIEW_MISSING = "REVIEW_MISSING"
    DB_NOT_READY = "DB_NOT_READY"
    DB_QUERY = "DB_QUERY"
    NOT_FOUND = "NOT_FOUND"
    PIPELINE = "PIPELINE"
