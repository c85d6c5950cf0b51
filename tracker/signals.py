"""
Django signals for the tracker application.

Ownership changes drive the product lifecycle:
- UserProduct created for a product on hold -> product becomes active
- Last UserProduct of a product deleted -> product is put on hold
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver


def _lifecycle(using):
    from tracker.services.product_lifecycle import ProductLifecycleManager
    from tracker.store import TrackerStore

    return ProductLifecycleManager(TrackerStore(using=using))


@receiver(post_save, sender="tracker.UserProduct")
def user_product_saved(sender, instance, created, using, **kwargs):
    """Reactivate a product on hold when someone starts tracking it."""
    if created:
        _lifecycle(using).ownership_created(instance.product)


@receiver(post_delete, sender="tracker.UserProduct")
def user_product_deleted(sender, instance, using, **kwargs):
    """Put a product on hold when its last owner stops tracking it."""
    from tracker.models import Product

    product = Product.objects.using(using).filter(pk=instance.product_id).first()
    if product is None:
        # Product itself is being deleted
        return
    _lifecycle(using).ownership_deleted(product)
