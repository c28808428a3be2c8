import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='UserCredential',
            fields=[
                ('uid', models.CharField(help_text='Opaque user identifier sent in x-sharenote-id', max_length=64, primary_key=True, serialize=False)),
                ('key_hash', models.CharField(help_text='SHA256 of salt + API key', max_length=64)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('rotated_at', models.DateTimeField(blank=True, help_text='Last time the key was replaced', null=True)),
            ],
            options={
                'verbose_name': 'User credential',
                'verbose_name_plural': 'User credentials',
                'ordering': ['-created_at'],
            },
        ),
    ]
