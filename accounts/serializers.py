# accounts/serializers.py
from rest_framework import serializers
from django.contrib.auth import get_user_model

User = get_user_model()


class SignupSerializer(serializers.ModelSerializer):
    password = serializers.CharField(
        write_only=True,
        required=True,
        min_length=8,
        style={'input_type': 'password'},
        help_text="Enter a strong password. Must be at least 8 characters."
    )

    class Meta:
        model = User
        fields = ('id', 'username', 'fullname', 'email', 'password')
        extra_kwargs = {
            'username': {'required': True, 'validators': []},
            'email': {'required': True, 'validators': []},
            'fullname': {'required': True},
        }

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class UserSerializer(serializers.ModelSerializer):
    """Public user details; never includes the password hash."""
    avatar = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='date_joined', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = User
        fields = ('id', 'username', 'fullname', 'email', 'avatar', 'createdAt', 'updatedAt')
        read_only_fields = ('id', 'email')

    def get_avatar(self, obj):
        return obj.avatar


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ('fullname', 'username')
        extra_kwargs = {
            'fullname': {'required': False},
            # uniqueness is checked in the view to return the friendly message
            'username': {'required': False, 'validators': []},
        }


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(
        required=True,
        error_messages={'required': "Current password and new password are required"},
    )
    newPassword = serializers.CharField(
        required=True,
        error_messages={'required': "Current password and new password are required"},
    )

    def validate_newPassword(self, value):
        if len(value) < 8:
            raise serializers.ValidationError("New password must be at least 8 characters long")
        return value
