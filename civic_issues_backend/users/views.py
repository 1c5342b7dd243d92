import logging
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.authtoken.models import Token
from django.contrib.auth import authenticate
from django.db import utils as db_utils
from issues.permissions import IsAdminRole
from .serializers import UserSerializer, RegisterSerializer

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        logger.debug("RegisterView called for username=%s", request.data.get('username'))
        try:
            serializer = RegisterSerializer(data=request.data, context={'request': request})
            if serializer.is_valid():
                user = serializer.save()
                token, _ = Token.objects.get_or_create(user=user)
                logger.info("User %s registered as %s", user.username, user.role)
                return Response({
                    "user": UserSerializer(user).data,
                    "token": token.key
                }, status=status.HTTP_201_CREATED)
            logger.warning("Registration failed: %s", serializer.errors)
            return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        except db_utils.DatabaseError:
            logger.exception("Database error during registration")
            return Response({"errors": {"service": "Database unavailable"}}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class LoginView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        username = request.data.get('username')
        password = request.data.get('password')

        if not username or not password:
            logger.warning("Login attempt missing username or password")
            return Response({"errors": {"credentials": "Username and password required"}}, status=status.HTTP_400_BAD_REQUEST)

        try:
            user = authenticate(request, username=username, password=password)
            if user:
                token, _ = Token.objects.get_or_create(user=user)
                logger.info("User %s logged in", user.username)
                return Response({
                    "user": UserSerializer(user).data,
                    "token": token.key
                }, status=status.HTTP_200_OK)
            logger.warning("Login failed for username=%s", username)
            return Response({"errors": {"credentials": "Invalid credentials"}}, status=status.HTTP_401_UNAUTHORIZED)
        except db_utils.DatabaseError:
            logger.exception("Database error during login")
            return Response({"errors": {"service": "Database unavailable"}}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class CurrentUserView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        logger.debug("Fetching current user: %s", request.user)
        serializer = UserSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)


class AdminCreateUserView(APIView):
    """
    Admin-only endpoint to create citizen or admin users
    """
    permission_classes = [IsAdminRole]

    def post(self, request):
        try:
            serializer = RegisterSerializer(data=request.data, context={'request': request})
            if serializer.is_valid():
                user = serializer.save()
                logger.info("Admin %s created %s %s", request.user.username, user.role, user.username)
                return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
            return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        except db_utils.DatabaseError:
            logger.exception("Database error during admin user creation")
            return Response({"errors": {"service": "Database unavailable"}}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
