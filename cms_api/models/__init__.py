from cms_api.models.user import User
from cms_api.models.reference import City, State
from cms_api.models.customer import Customer
from cms_api.models.address import Address
