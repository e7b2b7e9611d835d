from .user import User
from .profile import Profile
from .subject import Subject
from .achievement import Achievement
from .auth import AccessToken
