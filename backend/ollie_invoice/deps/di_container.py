"""
Dependency injection container using dependency-injector.
Wires the session factory, integrations, background workers and services.
"""

from typing import Any, Dict

from dependency_injector import containers, providers

from ollie_invoice.core.config import Settings, settings
from ollie_invoice.core.integrations.email_client import ResendEmailClient
from ollie_invoice.core.integrations.stripe_gateway import StripeGateway
from ollie_invoice.db.session import get_session_maker
from ollie_invoice.services.health_service import HealthService
from ollie_invoice.services.notification_service import NotificationService, NotificationQueue
from ollie_invoice.services.recurring_service import RecurringInvoiceService
from ollie_invoice.services.scheduler import RecurringInvoiceScheduler
from ollie_invoice.controllers.health_controller import HealthController


class Container(containers.DeclarativeContainer):
    """Dependency injection container."""

    # Configuration
    config = providers.Configuration()

    # Sessionmaker for work outside a request (scheduler, health checks)
    session_factory = providers.Callable(get_session_maker)

    # Integrations
    email_client = providers.Singleton(
        ResendEmailClient,
        api_key=config.resend_api_key,
        from_email=config.resend_from_email,
        base_url=config.resend_api_url,
    )

    gateway = providers.Singleton(
        StripeGateway,
        secret_key=config.stripe_secret_key,
        webhook_secret=config.stripe_webhook_secret,
        public_base_url=config.public_base_url,
    )

    # Services
    notification_service = providers.Singleton(
        NotificationService,
        email_client=email_client,
        public_base_url=config.public_base_url,
    )

    notification_queue = providers.Singleton(
        NotificationQueue,
        service=notification_service,
        max_attempts=config.notification_max_attempts,
        retry_delay=config.notification_retry_delay,
    )

    recurring_service = providers.Singleton(
        RecurringInvoiceService,
        session_factory=session_factory,
        notification_service=notification_service,
    )

    scheduler = providers.Singleton(
        RecurringInvoiceScheduler,
        recurring_service=recurring_service,
        run_hour=config.recurring_run_hour,
        run_minute=config.recurring_run_minute,
        catch_up_on_start=config.recurring_catch_up_on_startup,
    )

    health_service = providers.Singleton(
        HealthService,
        scheduler=scheduler,
        notification_queue=notification_queue,
    )

    # Controllers
    health_controller = providers.Factory(
        HealthController,
        health_service=health_service,
    )


def config_from_settings(app_settings: Settings) -> Dict[str, Any]:
    """Flatten settings into the container's configuration."""
    return {
        "public_base_url": app_settings.PUBLIC_BASE_URL,
        "resend_api_url": app_settings.RESEND_API_URL,
        "resend_api_key": app_settings.RESEND_API_KEY,
        "resend_from_email": app_settings.RESEND_FROM_EMAIL,
        "notification_max_attempts": app_settings.NOTIFICATION_MAX_ATTEMPTS,
        "notification_retry_delay": app_settings.NOTIFICATION_RETRY_DELAY_SECONDS,
        "stripe_secret_key": app_settings.STRIPE_SECRET_KEY,
        "stripe_webhook_secret": app_settings.STRIPE_WEBHOOK_SECRET,
        "recurring_run_hour": app_settings.RECURRING_RUN_HOUR,
        "recurring_run_minute": app_settings.RECURRING_RUN_MINUTE,
        "recurring_catch_up_on_startup": app_settings.RECURRING_CATCH_UP_ON_STARTUP,
    }


# Global container instance
_container: Container = None


def get_container() -> Container:
    """Get the global dependency injection container."""
    global _container
    if _container is None:
        _container = Container()
        _container.config.from_dict(config_from_settings(settings))
    return _container
