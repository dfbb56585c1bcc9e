from django.core.management.base import BaseCommand, CommandError

from forum.pipeline.queues import dead_letter_name
from forum.pipeline.runtime import PipelineRuntime
from forum.workers import WORKERS


class Command(BaseCommand):
    help = "Shows message counts of the pipeline queues, optionally purging one"

    def add_arguments(self, parser):
        parser.add_argument("--purge", metavar="QUEUE", help="Queue to purge")

    def handle(self, *args, **options):
        runtime = PipelineRuntime.from_settings()
        broker = runtime.broker
        valid = {queue.name for queue in broker.topology.all_queues()}
        runtime.start()
        try:
            target = options.get("purge")
            if target:
                if target not in valid:
                    raise CommandError(f"Unknown queue: {target}")
                purged = broker.purge(target)
                self.stdout.write(self.style.SUCCESS(f"Purged {purged} messages from {target}"))

            for name in WORKERS:
                self.stdout.write(
                    f"{name}: {broker.message_count(name)} ready, "
                    f"{broker.message_count(dead_letter_name(name))} dead-lettered"
                )
        finally:
            runtime.stop()
