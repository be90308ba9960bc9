import django.db.models.functions.comparison
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("strategy", "0001_initial"),
    ]

    operations = [
        migrations.AddConstraint(
            model_name="dataentry",
            constraint=models.UniqueConstraint(
                models.F("indicator"),
                models.F("period_year"),
                django.db.models.functions.comparison.Coalesce("period_quarter", models.Value(0)),
                django.db.models.functions.comparison.Coalesce("period_month", models.Value(0)),
                condition=models.Q(("status", "rejected"), _negated=True),
                name="entry_one_live_per_period",
            ),
        ),
    ]
