from perfreview.models.activity_log import ActivityLog
from perfreview.models.appeal import Appeal
from perfreview.models.employee import Employee
from perfreview.models.employee_review import EmployeeReview
from perfreview.models.feedback import Feedback
from perfreview.models.meeting import Meeting
from perfreview.models.review_cycle import ReviewCycle

__all__ = [ "ActivityLog", "Appeal", "Employee", 
           "EmployeeReview", "Feedback", "Meeting", "ReviewCycle" ]
