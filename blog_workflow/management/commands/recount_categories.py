from django.core.management.base import BaseCommand, CommandError

from blog_workflow.models import Category, Post


class Command(BaseCommand):
    help = "Rebuild Category.post_count from the published posts in each category."

    def add_arguments(self, parser):
        parser.add_argument("slugs", nargs="*", help="Only recount these categories")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report drift without writing",
        )

    def handle(self, *args, **opts):
        categories = Category.objects.all()
        if opts["slugs"]:
            categories = categories.filter(slug__in=opts["slugs"])
            missing = set(opts["slugs"]) - set(categories.values_list("slug", flat=True))
            if missing:
                raise CommandError(f"Unknown categories: {', '.join(sorted(missing))}")

        drifted = 0
        for category in categories:
            stored = category.post_count
            actual = category.posts.filter(status=Post.Status.PUBLISHED).count()
            if stored == actual:
                continue
            drifted += 1
            self.stdout.write(f"{category.slug}: {stored} -> {actual}")
            if not opts["dry_run"]:
                category.recount_post_count()

        verb = "would be fixed" if opts["dry_run"] else "fixed"
        self.stdout.write(self.style.SUCCESS(f"{drifted} categories {verb}"))
