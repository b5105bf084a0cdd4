# Generated manually: records where the last restore from DROPPED happened.

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("candidates", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="candidate",
            name="restored_after_attempt",
            field=models.PositiveSmallIntegerField(default=0),
        ),
    ]
