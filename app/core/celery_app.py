"""
Celery application configuration for background job processing.
"""
from celery import Celery
from app.core.config import settings

# Create the Celery application
celery_app = Celery(
    'inkflow',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        'app.tasks.workflow_tasks',
    ]
)

# Configure Celery
celery_app.conf.update(
    # Task serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Task execution
    task_always_eager=False,  # Set to True for testing
    task_eager_propagates=True,

    # Result backend
    result_expires=3600,  # 1 hour

    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Task routing
    task_routes={
        'app.tasks.workflow_tasks.deliver_webhook': {'queue': 'webhooks'},
        'app.tasks.workflow_tasks.*': {'queue': 'workflow'},
    },

    # Queue configuration
    task_default_queue='default',
    task_default_exchange='default',
    task_default_routing_key='default',

    # Beat schedule (replaces the dashboard's cron routes)
    beat_schedule={
        'publish-due-articles': {
            'task': 'app.tasks.workflow_tasks.publish_due_articles',
            'schedule': 60.0,  # Every minute
            'options': {'queue': 'workflow'}
        },
        'dispatch-due-generations': {
            'task': 'app.tasks.workflow_tasks.dispatch_due_generations',
            'schedule': 60.0,  # Every minute
            'options': {'queue': 'workflow'}
        },
    },

    # Timezone
    timezone='UTC',
    enable_utc=True,
)

if __name__ == '__main__':
    celery_app.start()
