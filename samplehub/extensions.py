from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf import CSRFProtect
from flask_login import LoginManager, current_user
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()

# JSON endpoints authenticate by session cookie; the Stripe webhook is csrf.exempt
csrf = CSRFProtect()

# No login page: unauthenticated API calls get a 401 JSON body (see create_app)
login_manager = LoginManager()
login_manager.session_protection = "basic"


def billing_rate_limit_key() -> str:
    """Checkout/portal/cancel limits apply per account, falling back to client IP."""
    if getattr(current_user, "is_authenticated", False):
        return f"user:{current_user.get_id()}"
    return f"ip:{get_remote_address()}"

# Storage URI is chosen per environment in create_app()
limiter = Limiter(key_func=billing_rate_limit_key)
