"""주문 번호 검증 (Luhn mod-10 체크섬)"""


def validate_order_number(number: str) -> bool:
    """
    Luhn 알고리즘으로 주문 번호 검증

    오른쪽 끝에서부터 두 번째 자리마다 2배(9 초과 시 9를 뺌)하여
    모든 자리를 합산하고, 합이 10의 배수이면 유효합니다.

    Args:
        number: 숫자로만 이루어진 주문 번호

    Returns:
        bool: 2자리 이상이고 숫자만 포함하며 체크섬이 맞으면 True
    """
    if len(number) < 2:
        return False
    # str.isdigit()은 '²' 같은 유니코드 숫자도 허용하므로 ASCII로 제한
    if not all("0" <= ch <= "9" for ch in number):
        return False

    total = 0
    for index, ch in enumerate(reversed(number)):
        digit = ord(ch) - ord("0")
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0
