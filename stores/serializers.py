from rest_framework import serializers
from .models import Banner, Store


class StoreSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Store
        fields = ['id', 'name', 'user_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {
            'name': {'min_length': 1, 'max_length': 255},
        }


class BannerSerializer(serializers.ModelSerializer):
    """
    Banner with either an ``image_url`` or an uploaded multipart ``file``.

    When both are sent the uploaded file wins.
    """
    store_id = serializers.IntegerField(read_only=True)
    image_url = serializers.URLField(max_length=500, required=False)
    file = serializers.FileField(write_only=True, required=False)

    class Meta:
        model = Banner
        fields = ['id', 'name', 'image_url', 'file', 'store_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        if self.instance is None and not attrs.get('image_url') and not attrs.get('file'):
            raise serializers.ValidationError({'image_url': ['This field is required.']})
        return attrs
