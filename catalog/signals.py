from django.db import transaction
from django.db.models.signals import post_delete
from django.dispatch import receiver
from .models import Image


@receiver(post_delete, sender=Image)
def delete_remote_file(sender, instance: Image, **kwargs):
    """Remove the hosted file once the row's deletion is committed, cascades included."""
    public_id = instance.public_id
    if not public_id:
        return

    from .tasks import delete_remote_image
    transaction.on_commit(lambda: delete_remote_image.delay(public_id))
