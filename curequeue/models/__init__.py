# Re-export Beanie documents
from .user import User
from .appointment import Appointment, QueueCounter
from .home_visit import HomeVisit, Location
from .review import Review
