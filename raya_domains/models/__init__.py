from raya_domains.db.base_class import Base
from raya_domains.models.tenant import Tenant
from raya_domains.models.custom_domain import CustomDomain, DomainStatus, DomainType
