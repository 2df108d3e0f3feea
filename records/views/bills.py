from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from records.permissions import CanBill
from records.serializers.revenue import DiscountSerializer, PaymentSerializer
from records.services.billing import apply_discount, process_payment, bill_payload
from records.services.integrity import invalidate_integrity


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanBill])
def bill_discount(request, pk: int):
    s = DiscountSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bill = apply_discount(pk, s.validated_data['amount'], s.validated_data.get('reason', ''), request.user)
    return Response({'ok': True, 'data': bill_payload(bill)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, CanBill])
def bill_pay(request, pk: int):
    s = PaymentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    bill = process_payment(pk, s.validated_data['method'], s.validated_data.get('details'), request.user)
    invalidate_integrity()
    return Response({'ok': True, 'data': bill_payload(bill)})
