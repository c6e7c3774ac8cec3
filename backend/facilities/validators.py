from django.core.validators import RegexValidator, validate_ipv4_address

# Six octets, all separated by ':' or all by '-'
validate_mac_address = RegexValidator(
    regex=r'^[0-9A-Fa-f]{2}([:-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}$',
    message='Enter a valid MAC address (e.g. 00:1A:2B:3C:4D:5E).',
)

__all__ = ['validate_ipv4_address', 'validate_mac_address']
