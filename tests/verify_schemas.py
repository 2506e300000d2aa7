import sys
import os
import traceback

# Add project root to path
sys.path.append(os.getcwd())

print("Starting schema verification...")

try:
    from bayline import schemas
    print("Schemas package imported successfully.")

    # Try instantiating a few to check for runtime errors in definitions
    from pydantic import ValidationError

    try:
        req = schemas.AvailabilityRequest(activity="Duckpin Bowling", party_size=7, date_key="2030-06-15", duration_minutes=60)
        print(f"AvailabilityRequest schema valid: {req}")
    except ValidationError as e:
        print(f"AvailabilityRequest validation failed: {e}")

    try:
        booking = schemas.BookingCreate(
            activity="COMBO",
            party_size=4,
            date_key="2030-06-15",
            start_time="6:00 PM",
            customer_name="Test User",
            customer_email="test@example.com",
        )
        print(f"BookingCreate schema valid: {booking}")
    except ValidationError as e:
        print(f"BookingCreate validation failed: {e}")

    print("SUCCESS: Schemas verified.")

except Exception:
    print("FAILURE: Schema verification failed.")
    traceback.print_exc()
    sys.exit(1)
