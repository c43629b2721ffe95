from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('clinic', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='user',
            name='pending_phone',
            field=models.CharField(blank=True, max_length=20),
        ),
    ]
