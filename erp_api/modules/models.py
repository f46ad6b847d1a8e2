"""
Import every model module so their tables are registered on Base.metadata
(table creation, Alembic autogenerate and the test database rely on it).
"""

import erp_api.common.numbering  # noqa: F401
import erp_api.modules.auth.models  # noqa: F401
import erp_api.modules.customers.models  # noqa: F401
import erp_api.modules.accounting.models  # noqa: F401
import erp_api.modules.inventory.models  # noqa: F401
import erp_api.modules.projects.models  # noqa: F401
import erp_api.modules.quotations.models  # noqa: F401
import erp_api.modules.delivery_invoicing.models  # noqa: F401
