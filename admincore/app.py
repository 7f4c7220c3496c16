from __future__ import annotations

from admincore.application import ResourceConsole, SessionGuard, profile_for
from admincore.core.encodings import CandidateTable
from admincore.core.resources import ResourceSpec, get_resource
from admincore.core.settings import Settings
from admincore.infrastructure import AdminApiClient, SessionTerminator, TokenSupplier
from admincore.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def create_console(
    resource: ResourceSpec | str,
    settings: Settings | None = None,
    *,
    client: AdminApiClient | None = None,
    token_supplier: TokenSupplier | None = None,
    on_session_end: SessionTerminator | None = None,
    configure_logging: bool = False,
    date_from: str | None = None,
    date_to: str | None = None,
) -> ResourceConsole:
    """Build a console for one resource view backed by the REST API.

    ``date_from``/``date_to`` limit the order dashboard to a date range.
    """

    settings = settings or Settings.from_env()
    if configure_logging:
        setup_logging(settings.log_level)

    spec = get_resource(resource) if isinstance(resource, str) else resource
    client = client or AdminApiClient.from_settings(settings, token_supplier=token_supplier)
    gateway = client.resource(spec)
    candidates = CandidateTable.load(settings.candidates_file)

    console = ResourceConsole(
        spec,
        list_fetch=gateway.fetch,
        bulk_action=gateway.bulk,
        field_update=gateway.update if spec.editable_fields else None,
        record_delete=gateway.delete,
        metrics_profile=profile_for(gateway, date_from=date_from, date_to=date_to),
        candidates=candidates,
        settings=settings,
        session=SessionGuard(on_session_end),
    )
    logger.info("Console ready for %s at %s", spec.name, settings.api_url)
    return console
