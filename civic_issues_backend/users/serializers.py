from rest_framework import serializers
from issues.lifecycle import ROLE_CITIZEN
from .models import User


class UserSerializer(serializers.ModelSerializer):
    is_admin = serializers.BooleanField(source='is_admin_role', read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'role',
            'is_admin',
            'phone_number',
        ]
        read_only_fields = ['id', 'role', 'is_admin']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False, default=ROLE_CITIZEN)

    class Meta:
        model = User
        fields = [
            'username',
            'password',
            'email',
            'first_name',
            'last_name',
            'role',
            'phone_number',
        ]

    def validate_role(self, value):
        """Only admins can hand out the admin role; roles never change afterwards."""
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if value == 'admin' and not getattr(user, 'is_admin_role', False):
            raise serializers.ValidationError('Only admin users can create admin users.')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)
