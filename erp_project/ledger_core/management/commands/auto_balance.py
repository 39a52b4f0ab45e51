from django.core.management.base import BaseCommand, CommandError
from django.core.exceptions import ValidationError

from ledger_core.services.auditor import (REGISTRY, create_missing_journals,
                                          find_missing_journals)


class Command(BaseCommand):
    help = "List or post journals missing for business documents."

    def add_arguments(self, parser):
        parser.add_argument(
            "document_types",
            nargs="*",
            help=f"Document types (default: all of {', '.join(REGISTRY)})",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only list documents without a posted journal.",
        )
        parser.add_argument(
            "--ids",
            type=int,
            nargs="+",
            help="Restrict to these document ids.",
        )

    def handle(self, *args, **options):
        types = options["document_types"] or list(REGISTRY)
        for document_type in types:
            try:
                if options["dry_run"]:
                    missing = find_missing_journals(document_type)
                    if options["ids"]:
                        missing = missing.filter(pk__in=options["ids"])
                    ids = list(missing.values_list("pk", flat=True))
                    self.stdout.write(
                        f"{document_type}: {len(ids)} missing {ids}")
                    continue
                result = create_missing_journals(
                    document_type, ids=options["ids"])
            except ValidationError as exc:
                raise CommandError("; ".join(exc.messages)) from exc

            style = self.style.SUCCESS if not result.failed \
                else self.style.WARNING
            self.stdout.write(style(
                f"{document_type}: processed={result.processed} "
                f"successful={result.successful} failed={result.failed}"))
            for row in result.results:
                if row["status"] == "failed":
                    self.stdout.write(self.style.ERROR(
                        f"  #{row['document_id']}: {row['error']}"))
