from app.db.session import engine
from app.db.base import Base

# Import models so SQLAlchemy registers them
from app.users.models import User, Shop, SubUser, Role  # noqa
from app.billing.models import StripeEvent  # noqa
from app.documents.models import OrderInvoice, OrderPackingList  # noqa
from app.esg.models import EsgRequest, ProductEsgScore  # noqa
from app.landed_cost.models import LandedCostCalculation  # noqa


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
