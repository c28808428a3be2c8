import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StoredFile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Base-36 name derived from the content', max_length=32)),
                ('category', models.CharField(choices=[('note', 'Note'), ('css', 'CSS'), ('file', 'File')], max_length=8)),
                ('extension', models.CharField(help_text='Lowercase file extension without dot', max_length=8)),
                ('owner_uid', models.CharField(db_index=True, help_text='UID of the uploading user', max_length=64)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('checksum_sha256', models.CharField(help_text='SHA256 of the content, used to tell dedup hits from collisions', max_length=64)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='After this moment the file is no longer served', null=True)),
            ],
            options={
                'verbose_name': 'Stored file',
                'verbose_name_plural': 'Stored files',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['owner_uid', 'category', '-created_at'], name='files_owner_recent_idx')],
                'constraints': [models.UniqueConstraint(fields=('category', 'name'), name='files_category_name_unique')],
            },
        ),
    ]
