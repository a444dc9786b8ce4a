from django.core.management.base import BaseCommand

from reseller_commissions.services import NotificationService


class Command(BaseCommand):
    help = "Deliver queued notification emails, retrying failed ones"

    def add_arguments(self, parser):
        parser.add_argument(
            '--limit', type=int, default=100,
            help="Maximum number of emails to process in this run",
        )

    def handle(self, *args, **options):
        result = NotificationService.dispatch_pending_emails(limit=options['limit'])
        self.stdout.write(
            f"Sent {result['sent']}, retrying {result['retrying']}, failed {result['failed']}"
        )
