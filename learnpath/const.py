"""Constants for the LearnPath progress engine."""

from datetime import timedelta

DOMAIN = "learnpath"

# Configuration (environment variables)
ENV_API_BASE_URL = "LEARNPATH_API_BASE_URL"
ENV_API_TOKEN = "LEARNPATH_API_TOKEN"
ENV_REQUEST_TIMEOUT = "LEARNPATH_REQUEST_TIMEOUT"
ENV_FANOUT_CONCURRENCY = "LEARNPATH_FANOUT_CONCURRENCY"
ENV_UPCOMING_TTL = "LEARNPATH_UPCOMING_TTL"
ENV_TOPIC_CATALOG = "LEARNPATH_TOPIC_CATALOG"
ENV_LOG_LEVEL = "LEARNPATH_LOG_LEVEL"

# Default values
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds, per request, no retries
DEFAULT_FANOUT_CONCURRENCY = 8
DEFAULT_UPCOMING_TTL = timedelta(minutes=2)
DEFAULT_UPCOMING_LIMIT = 5
DEFAULT_LOG_LEVEL = "INFO"

# Window modes
WINDOW_LAST_WEEKS = "weeks"
WINDOW_LAST_SESSIONS = "sessions"
DEFAULT_WINDOW_WEEKS = 4
DEFAULT_WINDOW_SESSIONS = 8

# Warning thresholds
LOW_SCORE_THRESHOLD = 60
LOW_COMPLETION_THRESHOLD = 70
SCORE_DROP_SPAN = 3

# Milestones
MILESTONE_KEYWORDS = ("exam", "mock", "test", "assessment")
FIRST_SESSION_TITLE = "First Session"
FIRST_SESSION_DESCRIPTION = "Attendance started - Materials assigned"
MILESTONE_DEFAULT_DESCRIPTION = "Important assessment"

# Meeting slots last 90 minutes
SLOT_DURATION_MINUTES = 90
DEFAULT_SLOT_RANGE = ("00:00", "01:30")

# User-facing message for an aggregate load failure
LOAD_FAILED_MESSAGE = "Failed to load class details. Please try again."

# API routes (relative to the configured base URL)
ROUTE_CLASS_MEETINGS = "/api/ACAD_ClassMeeting/{class_id}"
ROUTE_COVERED_TOPIC = "/api/ACAD_ClassMeeting/{meeting_id}/covered-topic"
ROUTE_ATTENDANCE_REPORT = "/api/ACAD_Attendance/students/{student_id}/report"
ROUTE_COURSE_ATTENDANCE_SUMMARY = (
	"/api/ACAD_Attendance/courses/{course_id}/students/{student_id}/summary",
	"/api/ACAD_Course/courses/{course_id}/students/{student_id}/summary",
)
ROUTE_COURSE_DETAILS = "/api/ACAD_Enrollment/{student_id}/coursedetails-results/{course_id}/"
ROUTE_STUDENT_CLASSES = "/api/ACAD_Class/students/{student_id}/learning-classes"
ROUTE_MEETING_ASSIGNMENTS = "/api/ACAD_Assignment/class-meeting/{meeting_id}/student/{student_id}/assignments"
