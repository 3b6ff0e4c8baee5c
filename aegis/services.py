from dataclasses import dataclass

from aegis.artifacts.exporter import ArtifactExporter
from aegis.artifacts.generator import ArtifactGenerator
from aegis.audit.audit_log import AuditLogStore
from aegis.config.settings import Settings
from aegis.rendering.factory import RendererFactory
from aegis.storage.base import BaseKeyValueStore
from aegis.storage.connection import close_pool
from aegis.storage.factory import KeyValueStoreFactory
from aegis.tasks.orchestrator import TaskOrchestrator, build_orchestrator


@dataclass
class Services:
    """Long-lived collaborators, constructed once and shared by the entry points."""

    settings: Settings
    kv: BaseKeyValueStore
    audit_log: AuditLogStore
    orchestrator: TaskOrchestrator
    exporter: ArtifactExporter

    def close(self) -> None:
        close_pool()


def build_services(settings: Settings) -> Services:
    """Wire substrate -> stores -> orchestrator and the artifact exporter."""
    kv = KeyValueStoreFactory.create(settings)
    audit_log = AuditLogStore(kv, cap=settings.audit_log_cap)
    orchestrator = build_orchestrator(settings, kv, audit_log)
    generator = ArtifactGenerator(RendererFactory.create(settings))
    exporter = ArtifactExporter(generator, audit_log)
    return Services(
        settings=settings,
        kv=kv,
        audit_log=audit_log,
        orchestrator=orchestrator,
        exporter=exporter,
    )
