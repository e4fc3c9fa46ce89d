from carcheck.supabase_client import get_supabase_client
from carcheck.schemas.request import InspectionRequest


def debug_requests():
    supabase = get_supabase_client()
    try:
        response = supabase.table("requests").select("*").order("created_at", desc=True).limit(5).execute()
        print(f"Columns: {response.data[0].keys() if response.data else 'No data to show columns'}")
        for row in response.data or []:
            request = InspectionRequest.model_validate(row)
            print(f"{request.id}: {request.from_location} -> {request.to_location} at {request.time} [{request.status}]")
    except Exception as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    debug_requests()
