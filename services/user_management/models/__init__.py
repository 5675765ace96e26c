from .users import SchoolUser, SchoolUserRole, USERS, roll_number_key
from .classes import ClassSection, CLASS_SECTIONS
