import logging

from django.contrib.auth import get_user_model
from rest_framework import generics, permissions, status
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from .serializers import LinkedAffiliateSerializer, LoginSerializer, UserSerializer, linked_affiliate

User = get_user_model()
logger = logging.getLogger(__name__)


class LoginView(APIView):
  """
  Email/password login for operators and affiliates.

  Affiliates get their referral code back alongside the tokens so the
  dashboard can render share links without a second request.
  """

  permission_classes = [AllowAny]

  def post(self, request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data["email"]

    user = User.objects.filter(email=email).first()
    if user is None or not user.check_password(serializer.validated_data["password"]):
      logger.info("Failed login for %s", email)
      raise AuthenticationFailed("Invalid credentials.")

    if not user.is_active:
      raise PermissionDenied("User account is inactive.")

    affiliate = linked_affiliate(user)
    refresh = RefreshToken.for_user(user)
    return Response(
      {
        "refresh": str(refresh),
        "access": str(refresh.access_token),
        "role": user.role,
        "affiliate": LinkedAffiliateSerializer(affiliate).data if affiliate else None,
      },
      status=status.HTTP_200_OK,
    )


class MeView(generics.RetrieveUpdateAPIView):
  serializer_class = UserSerializer
  permission_classes = [permissions.IsAuthenticated]
  http_method_names = ["get", "patch"]

  def get_object(self):
    return self.request.user

  def perform_update(self, serializer):
    user = serializer.save()
    affiliate = linked_affiliate(user)
    # Keep the affiliate's contact name in step with the login profile.
    if affiliate is not None and "full_name" in serializer.validated_data:
      affiliate.name = user.full_name
      affiliate.save(update_fields=["name"])
