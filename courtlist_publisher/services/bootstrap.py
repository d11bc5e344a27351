from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from azure.identity import DefaultAzureCredential

from courtlist_publisher.api.handlers.deps import ApiDeps
from courtlist_publisher.clients.assembler import HttpCourtListAssembler
from courtlist_publisher.clients.content_store import AzureBlobContentStore, operation_timeout_for
from courtlist_publisher.clients.hub import HttpHubPublisher
from courtlist_publisher.clients.http_base import AsyncHttpClientHolder
from courtlist_publisher.clients.identity import ManagedIdentityTokenProvider
from courtlist_publisher.clients.renderer import HttpRendererClient
from courtlist_publisher.clients.stub import (
    StubContentStore,
    StubCourtListAssembler,
    StubHubPublisher,
    StubRendererClient,
)
from courtlist_publisher.domain.contracts import (
    ContentStore,
    CourtListAssembler,
    HubPublisher,
    PublishDispatcher,
    RendererClient,
    StatusRepository,
)
from courtlist_publisher.domain.list_types import ListTypeCatalogue, load_list_type_catalogue
from courtlist_publisher.repositories.postgres import AsyncpgPoolManager, PostgresStatusRepository
from courtlist_publisher.repositories.stub import InMemoryStatusRepository
from courtlist_publisher.roles import RuntimeRole
from courtlist_publisher.services.settings import ServiceSettings, StorageSettings, service_settings_from_env
from courtlist_publisher.workers.dispatcher import AsyncPublishDispatcher, RejectingPublishDispatcher
from courtlist_publisher.workers.orchestrator import PublicationOrchestrator
from courtlist_publisher.workers.runner import DispatchRuntimeSettings, dispatch_runtime_settings_from_env

Hook = Callable[[], Awaitable[None]]


@dataclass
class RuntimeContainer:
    settings: ServiceSettings
    repository: StatusRepository
    assembler: CourtListAssembler
    renderer: RendererClient
    content_store: ContentStore
    hub: HubPublisher
    catalogue: ListTypeCatalogue
    orchestrator: PublicationOrchestrator
    dispatcher: PublishDispatcher
    api_deps: ApiDeps
    startup_hooks: list[Hook] = field(default_factory=list)
    shutdown_hooks: list[Hook] = field(default_factory=list)

    async def on_startup(self) -> None:
        for hook in self.startup_hooks:
            await hook()

    async def on_shutdown(self) -> None:
        for hook in self.shutdown_hooks:
            await hook()


def build_runtime_container(
    role: RuntimeRole,
    *,
    settings: ServiceSettings | None = None,
    dispatch_settings: DispatchRuntimeSettings | None = None,
) -> RuntimeContainer:
    settings = settings or service_settings_from_env()
    dispatch_settings = dispatch_settings or dispatch_runtime_settings_from_env()
    startup_hooks: list[Hook] = []
    shutdown_hooks: list[Hook] = []

    repository: StatusRepository
    if settings.database_url:
        pool_manager = AsyncpgPoolManager(dsn=settings.database_url)
        repository = PostgresStatusRepository(pool_manager=pool_manager)
        startup_hooks.append(pool_manager.startup)
    else:
        repository = InMemoryStatusRepository()

    http_holders: list[AsyncHttpClientHolder] = []

    def _http(base_url: str) -> AsyncHttpClientHolder:
        holder = AsyncHttpClientHolder(base_url=base_url, timeout_seconds=dispatch_settings.http_timeout_seconds)
        http_holders.append(holder)
        return holder

    assembler: CourtListAssembler
    if settings.court_list_data_base_url:
        assembler = HttpCourtListAssembler(
            http=_http(settings.court_list_data_base_url),
            system_user_id=settings.system_user_id,
        )
    else:
        assembler = StubCourtListAssembler()

    renderer: RendererClient
    if settings.document_generator_base_url:
        renderer = HttpRendererClient(
            http=_http(settings.document_generator_base_url),
            system_user_id=settings.system_user_id,
        )
    else:
        renderer = StubRendererClient()

    hub: HubPublisher
    if settings.publication_hub_url:
        hub = HttpHubPublisher(
            http=_http(settings.publication_hub_url),
            token_provider=ManagedIdentityTokenProvider(
                flow=settings.identity.flow,
                local_client_id=settings.identity.local_client_id,
                local_scope=settings.identity.local_scope,
                remote_client_id=settings.identity.remote_client_id,
                remote_app_registration_id=settings.identity.remote_app_registration_id,
            ),
        )
    else:
        hub = StubHubPublisher()

    content_store = build_content_store(
        settings.storage,
        operation_timeout_seconds=operation_timeout_for(dispatch_settings.stage_timeout_seconds),
    )
    catalogue = load_list_type_catalogue(file_path=settings.list_types_file)

    orchestrator = PublicationOrchestrator(
        repository=repository,
        assembler=assembler,
        renderer=renderer,
        content_store=content_store,
        hub=hub,
        catalogue=catalogue,
        stage_timeout_seconds=dispatch_settings.stage_timeout_seconds,
        artifact_folder=settings.storage.artifact_folder,
    )

    dispatcher: PublishDispatcher
    if role.accepts_publish_requests:
        async_dispatcher = AsyncPublishDispatcher(
            run=orchestrator.run,
            settings=dispatch_settings,
            role=role.name,
        )

        async def _start_dispatcher() -> None:
            async_dispatcher.start()

        startup_hooks.append(_start_dispatcher)
        shutdown_hooks.append(async_dispatcher.stop)
        dispatcher = async_dispatcher
    else:
        dispatcher = RejectingPublishDispatcher()

    for holder in http_holders:
        shutdown_hooks.append(holder.aclose)
    if settings.database_url:
        shutdown_hooks.append(pool_manager.shutdown)

    api_deps = ApiDeps(
        repository=repository,
        content_store=content_store,
        dispatcher=dispatcher,
        artifact_folder=settings.storage.artifact_folder,
    )
    return RuntimeContainer(
        settings=settings,
        repository=repository,
        assembler=assembler,
        renderer=renderer,
        content_store=content_store,
        hub=hub,
        catalogue=catalogue,
        orchestrator=orchestrator,
        dispatcher=dispatcher,
        api_deps=api_deps,
        startup_hooks=startup_hooks,
        shutdown_hooks=shutdown_hooks,
    )


def build_content_store(settings: StorageSettings, *, operation_timeout_seconds: int | None = None) -> ContentStore:
    if settings.connection_string:
        return AzureBlobContentStore.from_connection_string(
            settings.connection_string,
            container=settings.container,
            account_key=settings.account_key,
            sas_expiry_minutes=settings.sas_expiry_minutes,
            operation_timeout_seconds=operation_timeout_seconds,
        )
    if settings.account_name:
        return AzureBlobContentStore.from_account(
            settings.account_name,
            container=settings.container,
            credential=settings.account_key or DefaultAzureCredential(),
            account_key=settings.account_key,
            sas_expiry_minutes=settings.sas_expiry_minutes,
            operation_timeout_seconds=operation_timeout_seconds,
        )
    return StubContentStore()
